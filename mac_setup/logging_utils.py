from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from .lib.env import default_paths

DEFAULT_LOG_PATH = str(default_paths().log_default)

FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def _open_log(log_path: str, fmt: logging.Formatter) -> logging.FileHandler:
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path)
    except OSError:
        # Fall back to a writable location.
        handler = logging.FileHandler(str(Path.cwd() / "mac-setup.log"))
    handler.setFormatter(fmt)
    return handler


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Configure logging.

    Every decision is recorded to the log file (default
    ~/.local/state/mac-setup/install.log) and echoed to the console.

    If the requested location is not writable we fall back to a file in the
    working directory. The bootstrapper configures logging before handing
    off to the installer; when the installer then asks for another file, the
    file handler is swapped and the console handler kept.

    Returns the actual file path being used.
    """

    root = logging.getLogger()
    root.setLevel(level)
    fmt = logging.Formatter(fmt=FORMAT, datefmt=DATE_FORMAT)

    current: Optional[logging.FileHandler] = getattr(root, "_mac_setup_file_handler", None)
    if current is not None and getattr(root, "_mac_setup_log_request", None) == log_path:
        return current.baseFilename

    handler = _open_log(log_path, fmt)
    root.addHandler(handler)
    if current is not None:
        logging.getLogger(__name__).info("Switching log file to %s", handler.baseFilename)
        root.removeHandler(current)
        current.close()
    elif also_console:
        console = logging.StreamHandler()
        console.setFormatter(fmt)
        root.addHandler(console)

    setattr(root, "_mac_setup_file_handler", handler)
    setattr(root, "_mac_setup_log_request", log_path)

    logging.getLogger(__name__).info(
        "Logging initialized (requested=%s, actual=%s)", log_path, handler.baseFilename
    )
    return handler.baseFilename
