from __future__ import annotations

import logging
import re
import shlex
from typing import Sequence

from ..engine.retry import with_retries
from .chroot import chroot_cmd, runuser_cmd
from .command import run_cmd
from .files import replace_in_file

logger = logging.getLogger(__name__)

AUR_BASE_URL = "https://aur.archlinux.org"


def pacstrap(target_root: str, packages: Sequence[str], *, dry_run: bool = False) -> None:
    # -K initializes an empty pacman keyring in the target
    run_cmd(["pacstrap", "-K", target_root, *packages], dry_run=dry_run)


def pacman_install(
    target_root: str,
    packages: Sequence[str],
    *,
    max_attempts: int = 5,
    backoff: float = 10.0,
    dry_run: bool = False,
) -> bool:
    """Install packages into the target, retrying on connection hiccups.

    Packages are installed in one transaction so pacman can resolve
    conflicts between them (e.g. jack2 vs pipewire-jack).
    """

    if not packages:
        return True

    argv = ["pacman", "-S", "--noconfirm", "--needed", "--disable-download-timeout", *packages]
    return with_retries(
        lambda: chroot_cmd(target_root, argv, check=False, dry_run=dry_run).returncode,
        max_attempts=max_attempts,
        backoff=backoff,
        label="Pacman installation",
    )


def pacman_remove(target_root: str, packages: Sequence[str], *, check: bool = True, dry_run: bool = False) -> None:
    chroot_cmd(target_root, ["pacman", "-Rn", "--noconfirm", *packages], check=check, dry_run=dry_run)


def _set_wheel_nopasswd(target_root: str, enabled: bool, *, dry_run: bool) -> None:
    rule = "%wheel ALL=(ALL:ALL) NOPASSWD: ALL"
    if enabled:
        replace_in_file(target_root, "/etc/sudoers", rf"^# {re.escape(rule)}$", rule, dry_run=dry_run)
    else:
        replace_in_file(target_root, "/etc/sudoers", rf"^{re.escape(rule)}$", f"# {rule}", dry_run=dry_run)


def aur_install(
    target_root: str,
    username: str,
    repo: str,
    *,
    max_attempts: int = 5,
    backoff: float = 10.0,
    dry_run: bool = False,
) -> bool:
    """Clone and build an AUR package as `username`, retrying the whole fetch-and-build."""

    repo_url = f"{AUR_BASE_URL}/{repo}.git"
    build_dir = f"/home/{username}/.tmp-aur-{repo}"
    q_dir = shlex.quote(build_dir)

    def attempt() -> int:
        clone = runuser_cmd(
            target_root,
            username,
            f"rm -rf {q_dir}; git clone {shlex.quote(repo_url)} {q_dir}",
            check=False,
            dry_run=dry_run,
        )
        if clone.returncode != 0:
            return clone.returncode
        runuser_cmd(
            target_root,
            username,
            f"cd {q_dir} && echo -e \"\\noptions=('!debug')\" >>PKGBUILD",
            dry_run=dry_run,
        )
        build = runuser_cmd(
            target_root,
            username,
            f"cd {q_dir} && makepkg -si --noconfirm --needed",
            check=False,
            dry_run=dry_run,
        )
        return build.returncode

    # makepkg -si calls sudo non-interactively
    _set_wheel_nopasswd(target_root, True, dry_run=dry_run)
    try:
        ok = with_retries(attempt, max_attempts=max_attempts, backoff=backoff, label="AUR installation")
        runuser_cmd(target_root, username, f"rm -rf {q_dir}", check=False, dry_run=dry_run)
    finally:
        _set_wheel_nopasswd(target_root, False, dry_run=dry_run)
    return ok
