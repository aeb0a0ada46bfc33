from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import IO, Optional

DEFAULT_LOG_PATH = "./installer.log"
PRODUCT_TAG = "arch-linux"

# Extra audit categories, ordered between INFO and WARNING.
HEAD = 21
PROC = 22
PROP = 23

logging.addLevelName(HEAD, "HEAD")
logging.addLevelName(PROC, "PROC")
logging.addLevelName(PROP, "PROP")

_CATEGORY_BY_LEVEL = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    HEAD: "HEAD",
    PROC: "PROC",
    PROP: "PROP",
    logging.WARNING: "WARN",
    logging.ERROR: "FAIL",
    logging.CRITICAL: "FAIL",
}

ROOT_LOGGER = "arch_installer"


class CategoryFormatter(logging.Formatter):
    """`<timestamp> | <product-tag> | <CATEGORY> | <message>`."""

    def __init__(self, product_tag: str = PRODUCT_TAG) -> None:
        super().__init__(
            fmt=f"%(asctime)s | {product_tag} | %(category)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        record.category = _CATEGORY_BY_LEVEL.get(record.levelno, record.levelname)
        return super().format(record)


def _rotate(path: Path) -> None:
    if path.exists():
        os.replace(path, path.with_name(path.name + ".old"))


def configure_logging(log_path: str = DEFAULT_LOG_PATH, level: int = logging.INFO) -> str:
    """Open the durable installer log.

    An existing log is moved to `<log>.old` first; the new one is only ever
    appended to for the rest of the run. If the requested location is not
    writable we fall back to ./installer.log.

    Returns the actual file path being used.
    """

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.propagate = False

    # Reconfiguring replaces the previous durable handler.
    shutdown_logging()

    chosen_path = log_path
    try:
        p = Path(log_path)
        p.parent.mkdir(parents=True, exist_ok=True)
        _rotate(p)
        handler = logging.FileHandler(p, mode="a", encoding="utf-8")
    except OSError:
        fallback = Path.cwd() / "installer.log"
        _rotate(fallback)
        handler = logging.FileHandler(fallback, mode="a", encoding="utf-8")
        chosen_path = str(fallback)

    handler.setFormatter(CategoryFormatter())
    logger.addHandler(handler)

    setattr(logger, "_arch_installer_handler", handler)
    setattr(logger, "_arch_installer_log_path", chosen_path)

    logging.getLogger(__name__).debug("Logging initialized (requested=%s, actual=%s)", log_path, chosen_path)
    return chosen_path


def current_log_path() -> Optional[str]:
    return getattr(logging.getLogger(ROOT_LOGGER), "_arch_installer_log_path", None)


def _durable_handler() -> Optional[logging.Handler]:
    return getattr(logging.getLogger(ROOT_LOGGER), "_arch_installer_handler", None)


def append_output(path: str | Path) -> None:
    """Copy a task's output buffer verbatim into the durable log."""

    handler = _durable_handler()
    p = Path(path)
    if handler is None or not isinstance(handler, logging.StreamHandler) or not p.exists():
        return

    text = p.read_text(encoding="utf-8", errors="replace")
    if not text:
        return
    if not text.endswith("\n"):
        text += "\n"

    handler.acquire()
    try:
        handler.stream.write(text)
        handler.flush()
    finally:
        handler.release()


def redirect_to_stream(stream: IO[str]) -> None:
    """Point installer logging at `stream` instead of the durable log.

    Used inside a forked task: its records go to the task's output buffer and
    reach the durable log when the supervisor appends that buffer.
    """

    logger = logging.getLogger(ROOT_LOGGER)
    old = _durable_handler()
    if old is not None:
        # The file descriptor is shared with the parent; detach without closing.
        logger.removeHandler(old)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(CategoryFormatter())
    logger.addHandler(handler)
    setattr(logger, "_arch_installer_handler", handler)


def shutdown_logging() -> None:
    logger = logging.getLogger(ROOT_LOGGER)
    handler = _durable_handler()
    if handler is None:
        return
    logger.removeHandler(handler)
    handler.close()
    setattr(logger, "_arch_installer_handler", None)
    setattr(logger, "_arch_installer_log_path", None)
