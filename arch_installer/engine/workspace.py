from __future__ import annotations

import logging
import shutil
import tempfile
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..lib import command as command_lib
from ..lib.command import CommandError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ErrorRecord:
    """One-shot diagnostic handed from the failure site to the error trap.

    Whoever detects a failure first writes it; later writers are ignored.
    The trap consumes it exactly once.
    """

    path: Path

    def write(self, message: str) -> bool:
        try:
            with self.path.open("x", encoding="utf-8") as f:
                f.write(message.rstrip("\n") + "\n")
        except FileExistsError:
            return False
        return True

    def exists(self) -> bool:
        return self.path.exists()

    def consume(self) -> Optional[str]:
        try:
            text = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        self.path.unlink(missing_ok=True)
        return text or None


@dataclass(frozen=True)
class Workspace:
    """Transient scratch directory for one installer run."""

    root: Path

    @classmethod
    def create(cls, base_dir: str | Path = ".") -> "Workspace":
        base = Path(base_dir)
        base.mkdir(parents=True, exist_ok=True)
        return cls(root=Path(tempfile.mkdtemp(prefix=".tmp.", dir=str(base))).resolve())

    @property
    def process_log(self) -> Path:
        return self.root / "process.log"

    @property
    def error_record(self) -> ErrorRecord:
        return ErrorRecord(self.root / "installer.err")

    def cleanup(self) -> None:
        if self.root.exists():
            shutil.rmtree(self.root)
            logger.debug("Removed scratch dir %s", self.root)


def describe_exception(exc: BaseException, *, step: Optional[str] = None) -> str:
    """Render the failing command (or exception) with the location it came from."""

    # Frames inside the command runner only say where the error was raised.
    frames = [f for f in traceback.extract_tb(exc.__traceback__) if f.filename != command_lib.__file__]
    where = ""
    if frames:
        last = frames[-1]
        where = f" in function '{last.name}' (line {last.lineno})"

    if isinstance(exc, CommandError):
        text = f"Command '{exc.command}' failed with exit code {exc.returncode}{where}"
    else:
        text = f"{type(exc).__name__}: {exc}{where}"

    if step:
        text += f" during '{step}'"
    return text
