"""
Caller-facing operations: render a configured URL or document to PDF.

Two ways of reaching a browser:
  - remote: ExportConfig.remote points at a browser that is already running
    with --remote-debugging-port; its browser target is found via /json/version.
  - local:  ExportConfig.binary is started for this one render in a private
    scratch HOME and terminated afterwards.
"""

import logging
import uuid
from pathlib import Path
from typing import Optional

from .document import HtmlDocument
from .endpoint import browser_id_from, json_version, parse_major_version
from .errors import EndpointResolutionError, NotConfigured, NothingToPrint
from .supervisor import BrowserProcess, local_version
from .workflow import PrintJob

logger = logging.getLogger(__name__)

FILE_PREFIX = "pdfexport-"


def _unique_name(suffix):
    return f"{FILE_PREFIX}{uuid.uuid4().hex}{suffix}"


def _remote_info(config):
    info = json_version(config.remote, timeout=config.browser_timeout)
    if info is None:
        raise EndpointResolutionError(f"Cannot resolve debugging endpoint {config.remote.netloc}")
    return info


def from_html(config, html, as_file=False):
    """
    Return a copy of config that prints html.

    With as_file, the document is written to the config's storage and loaded
    through a file:// URL instead of being injected into a blank page. The
    storage is pinned on the returned config so the file outlives this call.
    """
    document = html if isinstance(html, HtmlDocument) else HtmlDocument(html)
    if not as_file:
        return config.replace(document=document)

    storage = config.file_storage()
    path = storage.create(_unique_name(".html"), document.render())
    return config.replace(document=document, storage=storage, url=Path(path).as_uri())


def to_pdf(config) -> bytes:
    """Render config's URL (or, without one, its document) and return the PDF bytes."""
    if config.url is None and config.document is None:
        raise NothingToPrint()

    def print_job(endpoint, browser_id):
        return PrintJob(
            endpoint,
            browser_id,
            url=config.url,
            document=config.document,
            browser_timeout=config.browser_timeout,
            page_timeout=config.page_timeout,
        ).run()

    if config.remote is not None:
        browser_id = browser_id_from(_remote_info(config))
        logger.debug(f"Printing through remote browser {config.remote.netloc}")
        return print_job(config.remote, browser_id)

    if config.binary is None:
        raise NotConfigured()

    # A scratch storage created here holds nothing but the browser profile
    storage = config.file_storage()
    try:
        home = storage.resolve_path("HOME")
        browser = BrowserProcess(config.binary, home, timeout=config.startup_timeout)
        return browser.run(print_job)
    finally:
        if config.storage is None:
            storage.cleanup()


def save_pdf(config) -> str:
    """Render like to_pdf() and store the result; returns the path of the stored file."""
    pdf = to_pdf(config)
    return config.file_storage().create(_unique_name(".pdf"), pdf)


def get_version(config) -> Optional[int]:
    """Major version of the configured browser, None if it cannot be parsed."""
    if config.remote is not None:
        version = _remote_info(config).get("Browser", "")
    elif config.binary is not None:
        version = local_version(config.binary)
    else:
        raise NotConfigured()

    logger.debug(f"Browser version: {version}")
    return parse_major_version(version)
