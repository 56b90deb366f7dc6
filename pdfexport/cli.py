"""
pdfexport - render HTML to PDF through a headless browser

Usage:
    pdfexport render --url https://example.com -o out.pdf
    pdfexport render --html page.html --binary /usr/bin/chromium -o out.pdf
    pdfexport render --html page.html --remote 127.0.0.1:9222 --landscape
    pdfexport version --binary /usr/bin/chromium

Without --binary/--remote, PDFEXPORT_BINARY and PDFEXPORT_REMOTE are used.
Without -o, the PDF is kept in a temporary directory and its path printed.

Exit codes:
    0   = Success
    1   = Generic error
    2   = Misuse (nothing to print, no browser configured)
    100 = Browser unavailable (launch timeout, early exit, endpoint unreachable)
    102 = Protocol or transport error
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import ExportConfig
from .document import HtmlDocument
from .endpoint import DebugEndpoint
from .errors import ErrorKind, PdfExportError
from .exporter import from_html, get_version, save_pdf, to_pdf
from .storage import TemporaryFileStorage

logger = logging.getLogger("pdfexport")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_MISUSE = 2
EXIT_BROWSER_UNAVAILABLE = 100
EXIT_PROTOCOL = 102

EXIT_CODES = {
    ErrorKind.MISUSE: EXIT_MISUSE,
    ErrorKind.LAUNCH_TIMEOUT: EXIT_BROWSER_UNAVAILABLE,
    ErrorKind.BROWSER_EXITED: EXIT_BROWSER_UNAVAILABLE,
    ErrorKind.ENDPOINT: EXIT_BROWSER_UNAVAILABLE,
    ErrorKind.UNKNOWN_RESPONSE: EXIT_PROTOCOL,
    ErrorKind.ERROR_RESPONSE: EXIT_PROTOCOL,
    ErrorKind.UNEXPECTED_RESULT: EXIT_PROTOCOL,
    ErrorKind.TRANSPORT: EXIT_PROTOCOL,
}


def build_parser():
    parser = argparse.ArgumentParser(prog="pdfexport", description="Render HTML to PDF via headless Chrome")
    parser.add_argument("--debug", action="store_true", help="Log CDP traffic and browser output")
    commands = parser.add_subparsers(dest="command", required=True)

    browser = argparse.ArgumentParser(add_help=False)
    target = browser.add_mutually_exclusive_group()
    target.add_argument("--binary", help="Chrome/Chromium binary to start")
    target.add_argument("--remote", type=DebugEndpoint.parse, help="host:port of a running browser")

    render = commands.add_parser("render", parents=[browser], help="Render a URL or HTML file")
    source = render.add_mutually_exclusive_group(required=True)
    source.add_argument("--url", help="URL to print")
    source.add_argument("--html", type=Path, help="HTML file to print")
    render.add_argument("--as-file", action="store_true", help="Load --html through a file:// URL")
    render.add_argument("-o", "--output", type=Path, help="Where to write the PDF")
    render.add_argument("--landscape", action="store_true")
    render.add_argument("--paper-width", type=float, help="Paper width in inches")
    render.add_argument("--paper-height", type=float, help="Paper height in inches")

    commands.add_parser("version", parents=[browser], help="Print the browser's major version")
    return parser


def print_parameters(args):
    parameters = {}
    if args.landscape:
        parameters["landscape"] = True
    if args.paper_width:
        parameters["paperWidth"] = args.paper_width
    if args.paper_height:
        parameters["paperHeight"] = args.paper_height
    return parameters


def make_config(args):
    overrides = {}
    if args.binary:
        # an explicit binary beats PDFEXPORT_REMOTE
        overrides["binary"] = args.binary
        overrides["remote"] = None
    if args.remote:
        overrides["remote"] = args.remote
    return ExportConfig.from_env(**overrides)


def cmd_render(args):
    config = make_config(args)
    storage = TemporaryFileStorage()
    config = config.replace(storage=storage)

    if args.url:
        config = config.replace(url=args.url, document=HtmlDocument("", print_parameters(args)))
    else:
        document = HtmlDocument(args.html.read_text(), print_parameters(args))
        config = from_html(config, document, as_file=args.as_file)

    if args.output is None:
        print(save_pdf(config))
        return EXIT_OK

    try:
        args.output.write_bytes(to_pdf(config))
    finally:
        storage.cleanup()
    print(args.output)
    return EXIT_OK


def cmd_version(args):
    version = get_version(make_config(args))
    if version is None:
        print("unknown")
        return EXIT_ERROR
    print(version)
    return EXIT_OK


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s [PDFEXPORT] %(levelname)s: %(message)s'
    )

    handler = cmd_render if args.command == "render" else cmd_version
    try:
        return handler(args)
    except PdfExportError as e:
        logger.error(str(e))
        return EXIT_CODES.get(e.kind, EXIT_ERROR)
    except OSError as e:
        logger.error(f"I/O error: {e}")
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
