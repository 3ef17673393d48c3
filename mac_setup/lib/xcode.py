from __future__ import annotations

import logging

from .command import Executor

logger = logging.getLogger(__name__)


class CommandLineTools:
    """Xcode Command Line Tools (compilers and git)."""

    def __init__(self, executor: Executor) -> None:
        self.executor = executor

    def is_installed(self) -> bool:
        return self.executor.query(["xcode-select", "-p"]).ok

    def request_install(self) -> None:
        # Opens the GUI installer; returns immediately.
        self.executor.run(["xcode-select", "--install"], check=False)

    def wait_for_install(self, *, timeout_s: float, interval_s: float = 5.0) -> bool:
        return self.executor.wait_until(
            self.is_installed,
            description="wait for Xcode Command Line Tools installation",
            timeout_s=timeout_s,
            interval_s=interval_s,
        )
