"""
Export configuration.

Defaults come from the environment:
  PDFEXPORT_BINARY            Path to the Chrome/Chromium binary (local mode)
  PDFEXPORT_REMOTE            host:port of an already running browser (remote mode)
  PDFEXPORT_STARTUP_TIMEOUT   Seconds to wait for a local browser to listen (10)
  PDFEXPORT_BROWSER_TIMEOUT   Read timeout of the browser connection (30)
  PDFEXPORT_PAGE_TIMEOUT      Read timeout of the page connection (300)
"""

import dataclasses
import os
from dataclasses import dataclass
from typing import Optional

from .document import HtmlDocument
from .endpoint import DebugEndpoint
from .storage import TemporaryFileStorage

STARTUP_TIMEOUT = float(os.environ.get("PDFEXPORT_STARTUP_TIMEOUT", 10))
BROWSER_TIMEOUT = float(os.environ.get("PDFEXPORT_BROWSER_TIMEOUT", 30))
PAGE_TIMEOUT = float(os.environ.get("PDFEXPORT_PAGE_TIMEOUT", 300))


@dataclass(frozen=True)
class ExportConfig:
    """Everything one render needs. Build it once, then call to_pdf()/save_pdf()."""
    binary: Optional[str] = None
    remote: Optional[DebugEndpoint] = None
    url: Optional[str] = None
    document: Optional[HtmlDocument] = None
    storage: Optional[TemporaryFileStorage] = None
    startup_timeout: float = STARTUP_TIMEOUT
    browser_timeout: float = BROWSER_TIMEOUT
    page_timeout: float = PAGE_TIMEOUT

    @classmethod
    def from_env(cls, **overrides):
        remote = os.environ.get("PDFEXPORT_REMOTE")
        values = {
            "binary": os.environ.get("PDFEXPORT_BINARY") or None,
            "remote": DebugEndpoint.parse(remote) if remote else None,
        }
        values.update(overrides)
        return cls(**values)

    def replace(self, **changes):
        return dataclasses.replace(self, **changes)

    def file_storage(self):
        """The configured storage, or a fresh temporary one."""
        if self.storage is None:
            return TemporaryFileStorage()
        return self.storage
