"""
Pytest fixtures for pdfexport tests
"""
import base64
import json
import stat
import sys
import textwrap
from collections import deque

import pytest
import websocket

from pdfexport.endpoint import DebugEndpoint

ENDPOINT = DebugEndpoint("127.0.0.1", 9222)
BROWSER_URL = ENDPOINT.browser_url("B1")
PAGE_URL = ENDPOINT.page_url("T1")
PDF_BYTES = b"%PDF-1.4 fake document"


class FakeSocket:
    """websocket-client connection answering from FakeDevTools' script"""

    def __init__(self, devtools, url):
        self.devtools = devtools
        self.url = url
        self.inbox = deque()
        self.closed = False

    def send(self, payload):
        message = json.loads(payload)
        self.devtools.calls.append((self.url, message["method"], message["params"]))
        replies = self.devtools.replies.get(message["method"], [{"result": {}}])
        for reply in replies:
            if isinstance(reply, dict) and "method" not in reply and "id" not in reply:
                reply = dict(reply, id=message["id"])
            self.inbox.append(reply)

    def recv(self):
        if not self.inbox:
            raise websocket.WebSocketTimeoutException("no message scripted")
        reply = self.inbox.popleft()
        return reply if isinstance(reply, str) else json.dumps(reply)

    def close(self):
        self.closed = True
        error = self.devtools.close_errors.get(self.url)
        if error:
            raise error


class FakeDevTools:
    """
    Scripted browser.

    replies maps a CDP method to the messages sent back for it: events
    ({"method": ...}) go out as they are, results/errors get the call's id
    unless they carry one, strings are sent raw.
    """

    def __init__(self):
        self.replies = {}
        self.calls = []
        self.sockets = {}
        self.close_errors = {}

    def connect(self, url, **kwargs):
        self.sockets[url] = FakeSocket(self, url)
        return self.sockets[url]

    def methods(self):
        return [method for _, method, _ in self.calls]

    def params(self, method):
        return next(params for _, m, params in self.calls if m == method)

    def script_pdf_job(self, frame_id="7"):
        """Replies for a complete, successful print of one target T1."""
        self.replies.update({
            "Target.createTarget": [{"result": {"targetId": "T1"}}],
            "Page.enable": [{"result": {}}],
            "Page.navigate": [
                {"result": {"frameId": frame_id, "loaderId": "L1"}},
                {"method": "Page.frameStartedLoading", "params": {"frameId": frame_id}},
                {"method": "Page.frameStoppedLoading", "params": {"frameId": "other"}},
                {"method": "Page.frameStoppedLoading", "params": {"frameId": frame_id}},
            ],
            "Page.setDocumentContent": [{"result": {}}],
            "Page.printToPDF": [
                {"method": "Page.lifecycleEvent", "params": {"name": "printing"}},
                {"result": {"data": base64.b64encode(PDF_BYTES).decode()}},
            ],
            "Target.closeTarget": [{"result": {"success": True}}],
        })
        return self


@pytest.fixture
def devtools(monkeypatch):
    """Replace websocket.create_connection with a scripted fake browser"""
    fake = FakeDevTools()
    monkeypatch.setattr(websocket, "create_connection", fake.connect)
    return fake


@pytest.fixture
def fake_browser(tmp_path):
    """
    Write an executable standing in for Chrome.

    It records its argv and environment in $HOME/launch.json, prints some
    noise on stderr and then, depending on mode:
      announce - prints the DevTools listening line and sleeps
      silent   - sleeps without announcing
      exit     - exits with code 3
    """
    def make(mode):
        script = tmp_path / f"fake-chrome-{mode}"
        script.write_text(f"#!{sys.executable}\n" + textwrap.dedent(f"""\
            import json, os, sys, time
            with open(os.path.join(os.environ["HOME"], "launch.json"), "w") as f:
                json.dump({{"argv": sys.argv[1:], "env": dict(os.environ)}}, f)
            sys.stderr.write("[0101/000000.000000:WARNING:headless_shell.cc] noise\\n")
            sys.stderr.flush()
            if "{mode}" == "exit":
                sys.exit(3)
            if "{mode}" == "announce":
                sys.stderr.write("DevTools listening on ws://127.0.0.1:45678/devtools/browser/0a1b-2c3d\\n")
                sys.stderr.flush()
            time.sleep(60)
        """))
        script.chmod(script.stat().st_mode | stat.S_IXUSR)
        return str(script)

    return make


@pytest.fixture
def browser_home(tmp_path):
    home = tmp_path / "home dir"
    home.mkdir()
    return str(home)
