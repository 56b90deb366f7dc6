# pdfexport
# HTML to PDF through a headless browser's DevTools protocol

from .config import ExportConfig
from .document import HtmlDocument
from .endpoint import DebugEndpoint
from .errors import (
    BrowserError,
    BrowserExited,
    EndpointResolutionError,
    ErrorKind,
    ErrorResponse,
    LaunchTimeout,
    NotConfigured,
    NothingToPrint,
    PdfExportError,
    TransportError,
    UnexpectedResult,
    UnknownResponse,
)
from .exporter import from_html, get_version, save_pdf, to_pdf
from .storage import TemporaryFileStorage

__all__ = [
    'ExportConfig', 'HtmlDocument', 'DebugEndpoint', 'TemporaryFileStorage',
    'to_pdf', 'save_pdf', 'from_html', 'get_version',
    'ErrorKind', 'PdfExportError', 'BrowserError', 'BrowserExited', 'LaunchTimeout',
    'EndpointResolutionError', 'ErrorResponse', 'UnknownResponse', 'UnexpectedResult',
    'TransportError', 'NothingToPrint', 'NotConfigured',
]
__version__ = '1.0.0'
