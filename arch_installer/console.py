from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.status import Status
from rich.text import Text

from .logging_utils import HEAD, PROC, PROP

logger = logging.getLogger(__name__)

PURPLE = "color(212)"
GREEN = "color(36)"
YELLOW = "color(221)"
RED = "color(9)"
WHITE = "color(251)"

BANNER = r"""
    _             _       _     _
   / \   _ __ ___| |__   | |   (_)_ __  _   ___  __
  / _ \ | '__/ __| '_ \  | |   | | '_ \| | | \ \/ /
 / ___ \| | | (__| | | | | |___| | | | | |_| |>  <
/_/   \_\_|  \___|_| |_| |_____|_|_| |_|\__,_/_/\_\
"""


def _fill(text: str, width: int = 24) -> str:
    return text.ljust(width)


class InstallerConsole:
    """Operator-facing output.

    Every styled line is mirrored into the durable log under its category so
    the audit trail matches what the operator saw.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.rich = console or Console(highlight=False)

    def header(self, title: str, *, version: str, debug: bool = False, force: bool = False) -> None:
        self.rich.clear()
        self.rich.print(Text(BANNER, style=PURPLE))
        prefix = "d." if debug else "v."
        self.rich.print(Text(f"Welcome to {title}    {prefix} {version}", style=f"bold {WHITE}"))
        self.rich.print()
        if force:
            self.rich.print(Text("CAUTION: Force mode enabled. Cancel with: Ctrl + c", style=f"bold {RED}"))
            self.rich.print()

    def title(self, message: str) -> None:
        logger.log(HEAD, message)
        self.rich.print(Text.assemble(("+ ", f"bold {PURPLE}"), (message, f"bold {PURPLE}")))

    def info(self, message: str) -> None:
        logger.info(message)
        self.rich.print(Text.assemble(("• ", f"bold {GREEN}"), (message, WHITE)))

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.rich.print(Text.assemble(("• ", f"bold {YELLOW}"), (message, WHITE)))

    def fail(self, message: str) -> None:
        logger.error(message)
        self.rich.print(Text.assemble(("• ", f"bold {RED}"), (message, WHITE)))

    def proc(self, name: str, status: str) -> None:
        logger.log(PROC, "%s %s", name, status)
        self.rich.print(
            Text.assemble(("• ", f"bold {GREEN}"), (_fill(name), f"bold {WHITE}"), ("  >  ", WHITE), (status, GREEN))
        )

    def prop(self, key: str, value: object) -> None:
        logger.log(PROP, "%s %s", key, value)
        self.rich.print(
            Text.assemble(("• ", f"bold {GREEN}"), (_fill(key), WHITE), ("  >  ", f"bold {GREEN}"), (str(value), f"bold {WHITE}"))
        )

    def success(self, message: str) -> None:
        logger.info(message)
        self.rich.print(Text(message, style=f"bold {GREEN}"))

    def status(self, label: str) -> Status:
        return self.rich.status(
            Text(label, style=PURPLE),
            spinner="line",
            spinner_style=PURPLE,
        )

    def confirm(self, question: str, *, default: bool = False) -> bool:
        """Ask a yes/no question; an interrupted prompt counts as "no"."""
        try:
            return Confirm.ask(Text(question, style=PURPLE), console=self.rich, default=default)
        except (KeyboardInterrupt, EOFError):
            self.rich.print()
            return False

    def choose(self, question: str, choices: Sequence[str]) -> Optional[str]:
        if not choices:
            return None
        try:
            return Prompt.ask(Text(question, style=PURPLE), console=self.rich, choices=list(choices), default=choices[0])
        except (KeyboardInterrupt, EOFError):
            self.rich.print()
            return None

    def secret(self, question: str) -> Optional[str]:
        """Read a hidden value; None when the operator backs out."""
        try:
            return Prompt.ask(Text(question, style=PURPLE), console=self.rich, password=True)
        except (KeyboardInterrupt, EOFError):
            self.rich.print()
            return None

    def page(self, path: str | Path) -> None:
        p = Path(path)
        if not p.exists():
            return
        lines = p.read_text(encoding="utf-8", errors="replace").splitlines()
        with self.rich.pager():
            for n, line in enumerate(lines, start=1):
                self.rich.print(Text.assemble((f"{n:>5} ", "dim"), line))
