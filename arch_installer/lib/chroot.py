from __future__ import annotations

import logging
from typing import Sequence

from .command import CmdResult, run_cmd

logger = logging.getLogger(__name__)


def chroot_cmd(
    target_root: str,
    argv: Sequence[str],
    *,
    check: bool = True,
    input_text: str | None = None,
    secret_input: bool = False,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command inside target root (arch-chroot sets up the API mounts)."""

    return run_cmd(
        ["arch-chroot", target_root, *argv],
        check=check,
        input_text=input_text,
        secret_input=secret_input,
        dry_run=dry_run,
    )


def runuser_cmd(target_root: str, username: str, script: str, *, check: bool = True, dry_run: bool = False) -> CmdResult:
    return chroot_cmd(
        target_root,
        ["/usr/bin/runuser", "-u", username, "--", "bash", "-c", script],
        check=check,
        dry_run=dry_run,
    )


def enable_services(target_root: str, services: Sequence[str], *, dry_run: bool = False) -> None:
    for service in services:
        chroot_cmd(target_root, ["systemctl", "enable", service], dry_run=dry_run)


def chown_home(target_root: str, username: str, *, dry_run: bool = False) -> None:
    chroot_cmd(target_root, ["chown", "-R", f"{username}:{username}", f"/home/{username}"], dry_run=dry_run)
