from __future__ import annotations

from pathlib import Path

from arch_installer.console import InstallerConsole


def categories(path: Path) -> list[tuple[str, str]]:
    """(category, message) for every formatted record in the log."""

    out = []
    for line in path.read_text(encoding="utf-8").splitlines():
        parts = line.split(" | ", 3)
        if len(parts) == 4:
            out.append((parts[2], parts[3]))
    return out


def console_text(console: InstallerConsole) -> str:
    return console.rich.file.getvalue()
