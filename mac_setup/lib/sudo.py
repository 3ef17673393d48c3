from __future__ import annotations

import logging
import threading
from typing import Optional

from .command import Runner, subprocess_runner
from .env import PreconditionError

logger = logging.getLogger(__name__)


class SudoKeepAlive:
    """Hold the sudo timestamp for the whole run.

    A daemon thread pings ``sudo -n true`` every ``interval_s`` seconds and
    exits as soon as the ping fails or ``stop()`` is called. It shares no
    state with the provisioning steps.
    """

    def __init__(self, *, interval_s: float = 60.0, runner: Optional[Runner] = None) -> None:
        self.interval_s = interval_s
        self.runner = runner or subprocess_runner
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def acquire(self) -> None:
        r = self.runner(["sudo", "-v"], env=None, cwd=None, input_text=None, interactive=True)
        if not r.ok:
            raise PreconditionError("sudo authorization failed")

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_s):
            r = self.runner(["sudo", "-n", "true"], env=None, cwd=None, input_text=None, interactive=False)
            if not r.ok:
                logger.debug("sudo keep-alive ping failed; stopping")
                return

    def start(self) -> None:
        self._thread = threading.Thread(target=self._loop, name="sudo-keepalive", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def __enter__(self) -> "SudoKeepAlive":
        self.acquire()
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()
