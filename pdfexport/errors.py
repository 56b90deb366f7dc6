"""
Exceptions raised while exporting a PDF.

Every exception carries a ``kind`` tag so callers (the CLI, mostly) can map a
failure to an exit code without matching on classes.
"""

from enum import Enum


class ErrorKind(Enum):
    LAUNCH_TIMEOUT = "launch_timeout"
    BROWSER_EXITED = "browser_exited"
    BROWSER = "browser"
    ENDPOINT = "endpoint"
    UNKNOWN_RESPONSE = "unknown_response"
    ERROR_RESPONSE = "error_response"
    UNEXPECTED_RESULT = "unexpected_result"
    TRANSPORT = "transport"
    MISUSE = "misuse"


class PdfExportError(Exception):
    """Base class of every export failure."""
    kind = ErrorKind.BROWSER


class LaunchTimeout(PdfExportError):
    """The browser did not announce its debugging endpoint in time."""
    kind = ErrorKind.LAUNCH_TIMEOUT

    def __init__(self, timeout):
        super().__init__(
            f"Terminated browser process after {timeout:g} seconds elapsed without the expected output"
        )
        self.timeout = timeout


class BrowserExited(PdfExportError):
    """The browser exited before announcing its debugging endpoint."""
    kind = ErrorKind.BROWSER_EXITED

    def __init__(self, returncode):
        super().__init__(f"Browser exited with code {returncode} before listening")
        self.returncode = returncode


class BrowserError(PdfExportError):
    kind = ErrorKind.BROWSER


class EndpointResolutionError(PdfExportError):
    """The remote debugging endpoint could not be queried."""
    kind = ErrorKind.ENDPOINT


class UnknownResponse(PdfExportError):
    kind = ErrorKind.UNKNOWN_RESPONSE

    def __init__(self, payload):
        super().__init__(f"Unknown response received: {payload}")
        self.payload = payload


class ErrorResponse(PdfExportError):
    """The browser answered a call with an error object."""
    kind = ErrorKind.ERROR_RESPONSE

    def __init__(self, code, message):
        super().__init__(f"Error response ({code}): {message}")
        self.code = code
        self.remote_message = message


class UnexpectedResult(PdfExportError):
    """A well-formed result lacked something the workflow depends on."""
    kind = ErrorKind.UNEXPECTED_RESULT

    def __init__(self, message, result):
        super().__init__(f"{message}. Got instead: {result!r}")
        self.result = result


class TransportError(PdfExportError):
    kind = ErrorKind.TRANSPORT


class NothingToPrint(PdfExportError, ValueError):
    """Neither a URL nor a document was configured."""
    kind = ErrorKind.MISUSE

    def __init__(self):
        super().__init__("Nothing to print")


class NotConfigured(PdfExportError, ValueError):
    """Neither a browser binary nor a remote endpoint was configured."""
    kind = ErrorKind.MISUSE

    def __init__(self):
        super().__init__("Set a binary or remote first")
