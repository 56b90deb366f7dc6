"""
Synchronous Chrome DevTools Protocol client.

CDP is a JSON-RPC-like protocol over WebSocket. Each command is sent as:
  {"id": N, "method": "Domain.method", "params": {...}}
And Chrome responds with:
  {"id": N, "result": {...}}                        -- on success
  {"id": N, "error": {"code": C, "message": "..."}}  -- on failure
Between a command and its response Chrome may push any number of events:
  {"method": "Domain.event", "params": {...}}

One CDPClient owns one websocket, to either the browser target
(ws://host:port/devtools/browser/{id}) or a page target
(ws://host:port/devtools/page/{id}).
"""

import json
import logging

import websocket

from .errors import ErrorResponse, TransportError, UnknownResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


def render_call(msg_id, method, params=None):
    """Encode a command. Params are always sent, as an object."""
    return json.dumps({"id": msg_id, "method": method, "params": params or {}})


def parse_message(payload):
    """
    Decode and classify one incoming message.

    Returns:
        dict: The message, if it is an event (has "method") or a result.

    Raises:
        ErrorResponse: If the message carries an error object.
        UnknownResponse: If the message is none of the above.
    """
    try:
        data = json.loads(payload)
    except (TypeError, ValueError):
        raise UnknownResponse(payload)

    if not isinstance(data, dict):
        raise UnknownResponse(payload)
    if "method" in data or "result" in data:
        return data
    if "error" in data:
        error = data["error"] if isinstance(data["error"], dict) else {}
        raise ErrorResponse(error.get("code"), error.get("message"))
    raise UnknownResponse(payload)


def matches(params, expected):
    """True if every key/value of expected is also in params."""
    if not expected:
        return True
    return all(k in params and params[k] == v for k, v in expected.items())


def _keys(mapping):
    return ",".join(mapping.keys()) if mapping else ""


class CDPClient:
    """
    One CDP connection.

    Message ids auto-increment per connection. Results are matched to their
    command by id; a result for another pending command that shows up while
    waiting is kept until that command's result() is asked for, so commands
    may be pipelined with send() + result(). Error responses are raised as soon
    as they are read, so at most one command may be in flight when an error is
    possible.

    Usage:
        with CDPClient(ws_url).connect() as cdp:
            cdp.call("Page.enable")
            cdp.wait_for("Page.loadEventFired")
    """

    def __init__(self, url, timeout=DEFAULT_TIMEOUT):
        self.url = url
        self.timeout = timeout
        self.ws = None
        self.msg_id = 0
        self._pending = {}

    def connect(self):
        """Open the websocket. Returns self for chaining."""
        try:
            # No Origin header: Chrome 111+ rejects foreign origins otherwise
            self.ws = websocket.create_connection(
                self.url, timeout=self.timeout, suppress_origin=True
            )
        except (websocket.WebSocketException, OSError) as e:
            raise TransportError(f"Cannot connect to {self.url}: {e}") from e
        logger.debug(f"Connected to {self.url}")
        return self

    def close(self):
        """Close the websocket. Failures are raised as TransportError."""
        if self.ws:
            ws, self.ws = self.ws, None
            try:
                ws.close()
            except (websocket.WebSocketException, OSError) as e:
                raise TransportError(f"Failed to close {self.url}: {e}") from e

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _receive(self):
        try:
            payload = self.ws.recv()
        except websocket.WebSocketTimeoutException as e:
            raise TransportError(f"Timed out after {self.timeout}s waiting on {self.url}") from e
        except (websocket.WebSocketException, OSError) as e:
            raise TransportError(f"Connection to {self.url} failed: {e}") from e
        return parse_message(payload)

    def send(self, method, params=None):
        """Send a command without waiting. Returns its message id."""
        self.msg_id += 1
        logger.debug(f"Transmitting CDP call: {method}({_keys(params)})")
        try:
            self.ws.send(render_call(self.msg_id, method, params))
        except (websocket.WebSocketException, OSError) as e:
            raise TransportError(f"Connection to {self.url} failed: {e}") from e
        return self.msg_id

    def result(self, msg_id):
        """
        Block until the result of command msg_id arrives and return it.

        Events read meanwhile are logged and discarded.
        """
        while msg_id not in self._pending:
            message = self._receive()
            if "method" in message:
                logger.debug(
                    f"Received CDP event: {message['method']}({_keys(message.get('params'))})"
                )
                continue
            self._pending[message.get("id")] = message["result"]

        result = self._pending.pop(msg_id)
        logger.debug(f"Received CDP result: {_keys(result) or 'none'}")
        return result

    def call(self, method, params=None):
        """Send a command and wait for its result."""
        return self.result(self.send(method, params))

    def wait_for(self, event, expected_params=None):
        """
        Block until an event named `event` arrives and return its params.

        With expected_params, only an event whose params contain all of these
        key/value pairs counts; e.g. {"frameId": frame_id} waits for that frame
        rather than any frame.
        """
        logger.debug(f"Awaiting CDP event: {event}({_keys(expected_params)})")
        while True:
            message = self._receive()
            if "method" not in message:
                self._pending[message.get("id")] = message["result"]
                continue

            params = message.get("params") or {}
            logger.debug(f"Received CDP event: {message['method']}({_keys(params)})")
            if message["method"] == event and matches(params, expected_params):
                return params
