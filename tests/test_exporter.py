"""
Tests for the caller-facing operations (pdfexport/exporter.py) and configuration
"""
import os
from pathlib import Path

import pytest

from pdfexport import exporter
from pdfexport.config import ExportConfig
from pdfexport.document import HtmlDocument
from pdfexport.endpoint import DebugEndpoint
from pdfexport.errors import EndpointResolutionError, NotConfigured, NothingToPrint, UnexpectedResult
from pdfexport.storage import TemporaryFileStorage

from conftest import ENDPOINT, PDF_BYTES

VERSION_INFO = {
    "Browser": "HeadlessChrome/104.0.5112.79",
    "webSocketDebuggerUrl": "ws://127.0.0.1:9222/devtools/browser/B1",
}


@pytest.fixture
def storage():
    storage = TemporaryFileStorage()
    yield storage
    storage.cleanup()


@pytest.fixture
def remote_browser(monkeypatch, devtools):
    """A scripted browser reachable at 127.0.0.1:9222"""
    monkeypatch.setattr(exporter, "json_version", lambda endpoint, timeout: VERSION_INFO)
    return devtools.script_pdf_job()


class FakeBrowserProcess:
    instances = []

    def __init__(self, binary, home, timeout):
        self.binary = binary
        self.home = home
        self.timeout = timeout
        FakeBrowserProcess.instances.append(self)

    def run(self, callback):
        return callback(ENDPOINT, "B1")


class TestToPdf:
    """Test rendering to bytes"""

    def test_remote(self, remote_browser):
        config = ExportConfig(remote=ENDPOINT, url="https://example.com")
        assert exporter.to_pdf(config) == PDF_BYTES

    def test_remote_unresolvable(self, monkeypatch):
        monkeypatch.setattr(exporter, "json_version", lambda endpoint, timeout: None)
        with pytest.raises(EndpointResolutionError):
            exporter.to_pdf(ExportConfig(remote=ENDPOINT, url="https://example.com"))

    def test_local(self, monkeypatch, devtools, storage):
        """Test that a local browser gets the storage's HOME as scratch directory"""
        devtools.script_pdf_job()
        FakeBrowserProcess.instances = []
        monkeypatch.setattr(exporter, "BrowserProcess", FakeBrowserProcess)
        config = ExportConfig(binary="/usr/bin/chromium", url="https://example.com",
                              storage=storage, startup_timeout=5)

        assert exporter.to_pdf(config) == PDF_BYTES

        browser, = FakeBrowserProcess.instances
        assert browser.binary == "/usr/bin/chromium"
        assert browser.home == storage.resolve_path("HOME")
        assert browser.timeout == 5

    def test_local_scratch_storage_is_removed(self, monkeypatch, devtools):
        """Test that a storage created for the browser profile does not outlive the render"""
        devtools.script_pdf_job()
        FakeBrowserProcess.instances = []
        monkeypatch.setattr(exporter, "BrowserProcess", FakeBrowserProcess)

        assert exporter.to_pdf(ExportConfig(binary="/usr/bin/chromium", url="https://example.com")) == PDF_BYTES

        browser, = FakeBrowserProcess.instances
        assert not os.path.exists(os.path.dirname(browser.home)), "Scratch storage should be removed"

    def test_local_scratch_storage_is_removed_on_failure(self, monkeypatch, devtools):
        devtools.script_pdf_job()
        devtools.replies["Page.printToPDF"] = [{"result": {}}]
        FakeBrowserProcess.instances = []
        monkeypatch.setattr(exporter, "BrowserProcess", FakeBrowserProcess)

        with pytest.raises(UnexpectedResult):
            exporter.to_pdf(ExportConfig(binary="/usr/bin/chromium", url="https://example.com"))

        browser, = FakeBrowserProcess.instances
        assert not os.path.exists(os.path.dirname(browser.home))

    def test_local_configured_storage_is_kept(self, monkeypatch, devtools, storage):
        devtools.script_pdf_job()
        monkeypatch.setattr(exporter, "BrowserProcess", FakeBrowserProcess)
        exporter.to_pdf(ExportConfig(binary="/usr/bin/chromium", url="https://example.com", storage=storage))
        assert os.path.isdir(storage.base_dir), "A caller's storage is theirs to clean up"

    def test_nothing_to_print_before_any_browser(self, monkeypatch):
        """Test that misuse is detected before the endpoint is even queried"""
        def fail(*args):
            raise AssertionError("endpoint should not be queried")

        monkeypatch.setattr(exporter, "json_version", fail)
        with pytest.raises(NothingToPrint):
            exporter.to_pdf(ExportConfig(remote=ENDPOINT))

    def test_no_browser_configured(self):
        with pytest.raises(NotConfigured):
            exporter.to_pdf(ExportConfig(url="https://example.com"))


class TestFiles:
    """Test the storage-backed operations"""

    def test_save_pdf(self, remote_browser, storage):
        path = exporter.save_pdf(ExportConfig(remote=ENDPOINT, url="https://example.com", storage=storage))
        assert Path(path).read_bytes() == PDF_BYTES
        assert Path(path).parent == Path(storage.base_dir)
        assert Path(path).name.startswith("pdfexport-")

    def test_save_pdf_failure_leaves_no_file(self, monkeypatch, storage):
        """Test that a failed render does not leave an empty PDF behind"""
        monkeypatch.setattr(exporter, "json_version", lambda endpoint, timeout: None)
        with pytest.raises(EndpointResolutionError):
            exporter.save_pdf(ExportConfig(remote=ENDPOINT, url="https://example.com", storage=storage))
        assert os.listdir(storage.base_dir) == []

    def test_from_html_inline(self):
        config = exporter.from_html(ExportConfig(), "<p>hi</p>")
        assert config.document == HtmlDocument("<p>hi</p>")
        assert config.url is None

    def test_from_html_as_file(self, storage, remote_browser):
        """Test that the document is stored and loaded by URL"""
        document = HtmlDocument("<p>hi</p>", {"landscape": True})
        config = exporter.from_html(ExportConfig(remote=ENDPOINT, storage=storage), document, as_file=True)

        assert config.url.startswith("file://")
        path = Path(config.url[len("file://"):])
        assert path.read_text() == "<p>hi</p>"

        exporter.to_pdf(config)
        assert remote_browser.params("Page.navigate") == {"url": config.url}
        assert remote_browser.params("Page.printToPDF")["landscape"] is True


class TestGetVersion:
    """Test the version capability query"""

    def test_remote(self, monkeypatch):
        monkeypatch.setattr(exporter, "json_version", lambda endpoint, timeout: VERSION_INFO)
        assert exporter.get_version(ExportConfig(remote=ENDPOINT)) == 104

    def test_binary(self, monkeypatch):
        monkeypatch.setattr(exporter, "local_version", lambda binary: "Chromium 120.0.6099.224 snap")
        assert exporter.get_version(ExportConfig(binary="chromium")) == 120

    def test_unknown(self, monkeypatch):
        monkeypatch.setattr(exporter, "local_version", lambda binary: "Chromium dev build")
        assert exporter.get_version(ExportConfig(binary="chromium")) is None

    def test_not_configured(self):
        with pytest.raises(NotConfigured):
            exporter.get_version(ExportConfig())


class TestConfig:
    """Test configuration from the environment"""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("PDFEXPORT_BINARY", "/usr/bin/chromium")
        monkeypatch.setenv("PDFEXPORT_REMOTE", "chrome:9333")
        config = ExportConfig.from_env(url="https://example.com")

        assert config.binary == "/usr/bin/chromium"
        assert config.remote == DebugEndpoint("chrome", 9333)
        assert config.url == "https://example.com"

    def test_immutable(self):
        config = ExportConfig()
        with pytest.raises(Exception):
            config.url = "https://example.com"
        assert config.replace(url="x").url == "x"
        assert config.url is None

    def test_storage_create(self, storage):
        path = storage.create("a.txt", "text")
        assert os.path.isfile(path)
        assert storage.resolve_path("a.txt", assert_existence=True) == path
        with pytest.raises(FileNotFoundError):
            storage.resolve_path("missing", assert_existence=True)
