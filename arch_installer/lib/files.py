from __future__ import annotations

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)


def target_path(root: str, rel: str) -> Path:
    return Path(root) / rel.lstrip("/")


def write_file(root: str, rel: str, contents: str, *, dry_run: bool = False) -> None:
    p = target_path(root, rel)
    if dry_run:
        logger.info("Would write %s", str(p))
        return
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(contents, encoding="utf-8")


def append_file(root: str, rel: str, contents: str, *, dry_run: bool = False) -> None:
    p = target_path(root, rel)
    if dry_run:
        logger.info("Would append to %s", str(p))
        return
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("a", encoding="utf-8") as f:
        f.write(contents)


def replace_in_file(root: str, rel: str, pattern: str, repl: str, *, dry_run: bool = False) -> int:
    """In-place regex substitution (multiline). Returns the number of replacements."""

    p = target_path(root, rel)
    if dry_run:
        logger.info("Would edit %s (%s)", str(p), pattern)
        return 0
    text = p.read_text(encoding="utf-8")
    new, count = re.subn(pattern, repl, text, flags=re.MULTILINE)
    if count:
        p.write_text(new, encoding="utf-8")
    logger.info("Edited %s: %d replacement(s) for %s", str(p), count, pattern)
    return count
