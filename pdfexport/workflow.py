"""
The print-to-PDF exchange against a browser that is already listening.

    IDLE -> BROWSER_CONNECTED -> TARGET_CREATED -> PAGE_CONNECTED
         -> PAGE_EVENTS_ENABLED -> CONTENT_LOADED -> PDF_READY -> CLOSED

Each render opens its own tab (target) and closes it again. The page
connection uses a longer read timeout than the browser connection, as
printing a large document can take a while.
"""

import base64
import binascii
import logging
from enum import Enum

from .config import BROWSER_TIMEOUT, PAGE_TIMEOUT
from .errors import NothingToPrint, PdfExportError, TransportError, UnexpectedResult
from .protocol import CDPClient

logger = logging.getLogger(__name__)

FIXED_PRINT_PARAMETERS = {"transferMode": "ReturnAsBase64", "printBackground": True}


class State(Enum):
    IDLE = "idle"
    BROWSER_CONNECTED = "browser_connected"
    TARGET_CREATED = "target_created"
    PAGE_CONNECTED = "page_connected"
    PAGE_EVENTS_ENABLED = "page_events_enabled"
    CONTENT_LOADED = "content_loaded"
    PDF_READY = "pdf_ready"
    CLOSED = "closed"


def require(result, key, message):
    """result[key], or UnexpectedResult if it is missing or empty."""
    value = result.get(key) if isinstance(result, dict) else None
    if not value:
        raise UnexpectedResult(message, result)
    return value


def decode_pdf(result):
    data = require(result, "data", "Expected base64 data")
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise UnexpectedResult(f"Expected base64 data ({e})", result) from e


class PrintJob:
    """
    Print one URL or document through the browser at endpoint.

    Usage:
        pdf = PrintJob(endpoint, browser_id, url="https://example.com").run()
    """

    def __init__(self, endpoint, browser_id, url=None, document=None,
                 browser_timeout=BROWSER_TIMEOUT, page_timeout=PAGE_TIMEOUT):
        self.endpoint = endpoint
        self.browser_id = browser_id
        self.url = url
        self.document = document
        self.browser_timeout = browser_timeout
        self.page_timeout = page_timeout

        self.state = State.IDLE
        self.browser = None
        self.page = None
        self.target_id = None

    def _advance(self, state):
        logger.debug(f"Print job {self.state.value} -> {state.value}")
        self.state = state

    @property
    def print_parameters(self):
        parameters = self.document.get_print_parameters() if self.document is not None else {}
        parameters.update(FIXED_PRINT_PARAMETERS)
        return parameters

    def run(self):
        """Returns the PDF as bytes."""
        if self.url is None and self.document is None:
            raise NothingToPrint()

        self.browser = CDPClient(
            self.endpoint.browser_url(self.browser_id), timeout=self.browser_timeout
        ).connect()
        self._advance(State.BROWSER_CONNECTED)

        try:
            result = self.browser.call("Target.createTarget", {"url": "about:blank"})
            self.target_id = require(result, "targetId", "Expected target id")
            self._advance(State.TARGET_CREATED)

            pdf = self._print()
        except PdfExportError:
            self._abandon()
            raise

        self._close()
        return pdf

    def _print(self):
        self.page = CDPClient(
            self.endpoint.page_url(self.target_id), timeout=self.page_timeout
        ).connect()
        self._advance(State.PAGE_CONNECTED)

        result = self.page.call("Page.enable")
        if result:
            raise UnexpectedResult("Expected empty result", result)
        self._advance(State.PAGE_EVENTS_ENABLED)

        if self.url is not None:
            result = self.page.call("Page.navigate", {"url": self.url})
            frame_id = require(result, "frameId", "Expected navigation frame")
            if result.get("errorText"):
                logger.warning(f"Navigation to {self.url} reported {result['errorText']}")
            self.page.wait_for("Page.frameStoppedLoading", {"frameId": frame_id})
        else:
            self.page.call("Page.setDocumentContent", {
                "frameId": self.target_id,
                "html": self.document.render(),
            })
        self._advance(State.CONTENT_LOADED)

        pdf = decode_pdf(self.page.call("Page.printToPDF", self.print_parameters))
        self._advance(State.PDF_READY)
        return pdf

    def _close(self):
        self.page.close()

        result = self.browser.call("Target.closeTarget", {"targetId": self.target_id})
        if "success" not in result:
            raise UnexpectedResult("Expected close confirmation", result)

        try:
            self.browser.close()
        except TransportError as e:
            # Some browsers drop the connection instead of answering the close frame
            logger.debug(f"Failed to close browser connection: {e}")
        self._advance(State.CLOSED)

    def _abandon(self):
        """Best-effort cleanup after a failure; never masks the error being raised."""
        for step in (self._abandon_page, self._abandon_target, self._abandon_browser):
            try:
                step()
            except PdfExportError as e:
                logger.debug(f"Cleanup after failure in state {self.state.value}: {e}")

    def _abandon_page(self):
        if self.page is not None:
            self.page.close()

    def _abandon_target(self):
        if self.target_id is not None:
            self.browser.call("Target.closeTarget", {"targetId": self.target_id})

    def _abandon_browser(self):
        self.browser.close()
