"""
Local browser process supervision.

The browser is started with --remote-debugging-port=0, so the port is only
known once the browser prints it on stderr:

    DevTools listening on ws://127.0.0.1:<port>/devtools/browser/<id>

BrowserProcess runs one asyncio loop with three event sources: stderr lines,
a one-shot watchdog timer and the process exit. Whichever of "endpoint
announced" and "watchdog fired" comes first moves the process out of the
STARTING phase; the other one is then ignored.
"""

import asyncio
import logging
import os
import re
import shlex
import signal
import subprocess
from enum import Enum

from .config import STARTUP_TIMEOUT
from .endpoint import DebugEndpoint
from .errors import BrowserError, BrowserExited, LaunchTimeout

logger = logging.getLogger(__name__)

DEBUG_ADDR_PATTERN = re.compile(
    r"^DevTools listening on ws://(127\.0\.0\.1:\d+)/devtools/browser/([\w-]+)$"
)


def browser_arguments(home):
    """Fixed headless flags; home is the private scratch directory."""
    return {
        "--bwsi": None,
        "--headless": None,
        "--disable-gpu": None,
        "--no-sandbox": None,
        "--no-first-run": None,
        "--disable-dev-shm-usage": None,
        "--remote-debugging-port=0": None,
        "--homedir=": home,
        "--user-data-dir=": home,
    }


def render_argument_list(arguments):
    """
    Render name-value pairs as one shell-escaped string.

    A None value renders the bare name. Names ending in "=" are glued to their
    value, other names are separated from it by a space. Integer keys render
    the bare value, as a positional argument.
    """
    rendered = []
    for name, value in arguments.items():
        if value is None:
            rendered.append(shlex.quote(str(name)))
        elif isinstance(name, int):
            rendered.append(shlex.quote(str(value)))
        else:
            glue = "" if str(name).endswith("=") else " "
            rendered.append(shlex.quote(str(name)) + glue + shlex.quote(str(value)))
    return " ".join(rendered)


def argument_vector(arguments):
    """Same as render_argument_list, as an argv list for exec-style launches."""
    argv = []
    for name, value in arguments.items():
        if value is None:
            argv.append(str(name))
        elif isinstance(name, int):
            argv.append(str(value))
        elif str(name).endswith("="):
            argv.append(f"{name}{value}")
        else:
            argv.extend([str(name), str(value)])
    return argv


def local_version(binary):
    """Version string printed by `<binary> --version`."""
    result = subprocess.run(
        [binary, "--version"], capture_output=True, text=True, timeout=STARTUP_TIMEOUT
    )
    if result.returncode != 0:
        raise BrowserError(result.stderr.strip() or f"{binary} --version exited with {result.returncode}")
    return result.stdout.strip()


class Phase(Enum):
    STARTING = "starting"
    LISTENING = "listening"
    TIMED_OUT = "timed_out"


class BrowserProcess:
    """
    A headless browser started for exactly one render.

    Usage:
        pdf = BrowserProcess(binary, home).run(
            lambda endpoint, browser_id: PrintJob(endpoint, browser_id, ...).run()
        )

    The callback runs in a worker thread while the loop keeps reading stderr;
    once it returns (or raises) the browser is asked to terminate.
    """

    def __init__(self, binary, home, timeout=STARTUP_TIMEOUT):
        self.binary = binary
        self.home = home
        self.timeout = timeout
        self.phase = Phase.STARTING
        self.process = None
        self.returncode = None
        self._watchdog = None

    @property
    def command_line(self):
        return " ".join([shlex.quote(self.binary), render_argument_list(browser_arguments(self.home))])

    async def _spawn(self):
        if os.name == "posix":
            # exec: signals must reach the browser, not an intermediate shell
            logger.debug(f"Starting browser process: HOME={self.home} exec {self.command_line}")
            return await asyncio.create_subprocess_shell(
                f"exec {self.command_line}",
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
                env={"HOME": self.home},
            )

        logger.debug(f"Starting browser process: {self.command_line}")
        return await asyncio.create_subprocess_exec(
            self.binary,
            *argument_vector(browser_arguments(self.home)),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )

    def _signal(self, signum):
        if self.process is None or self.process.returncode is not None:
            return
        try:
            self.process.send_signal(signum)
        except ProcessLookupError:
            pass

    def _on_watchdog(self):
        if self.phase is not Phase.STARTING:
            return
        self.phase = Phase.TIMED_OUT
        # Windows only knows SIGTERM, which maps to TerminateProcess
        self._signal(signal.SIGABRT if os.name == "posix" else signal.SIGTERM)
        logger.error(
            f"Terminated browser process after {self.timeout:g} seconds elapsed without the expected output"
        )

    def _on_endpoint(self, match):
        if self.phase is not Phase.STARTING:
            return None
        self._watchdog.cancel()
        self.phase = Phase.LISTENING
        return DebugEndpoint.parse(match.group(1)), match.group(2)

    def _on_exit(self, returncode):
        self.returncode = returncode
        if returncode < 0:
            logger.debug(f"Browser terminated by signal {-returncode}")
        else:
            logger.debug(f"Browser exited with code {returncode}")

    async def supervise(self, callback):
        """Start the browser, hand its endpoint to callback, return callback's result."""
        loop = asyncio.get_running_loop()
        self.process = await self._spawn()
        self._watchdog = loop.call_later(self.timeout, self._on_watchdog)

        render = None
        try:
            while True:
                raw = await self.process.stderr.readline()
                if not raw:
                    break
                line = raw.decode(errors="replace").strip()
                logger.debug(f"Caught browser output: {line}")

                match = DEBUG_ADDR_PATTERN.match(line)
                if match is None or render is not None:
                    continue
                announced = self._on_endpoint(match)
                if announced is None:
                    continue
                render = loop.run_in_executor(None, callback, *announced)
                render.add_done_callback(lambda _: self._signal(signal.SIGTERM))
        finally:
            self._watchdog.cancel()
            if render is None and self.phase is Phase.STARTING:
                # stderr closed without an announcement; make sure the child goes away
                self._signal(signal.SIGTERM)
            self._on_exit(await self.process.wait())

        if render is not None:
            return await render
        if self.phase is Phase.TIMED_OUT:
            raise LaunchTimeout(self.timeout)
        raise BrowserExited(self.returncode)

    def run(self, callback):
        return asyncio.run(self.supervise(callback))
