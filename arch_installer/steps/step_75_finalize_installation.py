from __future__ import annotations

import logging
from typing import Any, Dict

from .. import __version__
from ..lib.chroot import chown_home, chroot_cmd
from ..lib.env import INIT_FILENAME, PATHS
from ..lib.files import target_path, write_file
from ..properties import require

logger = logging.getLogger(__name__)

SYSTEM_DIR = ".arch-linux/system"


def init_script(username: str, body: str, *, version: str = __version__) -> str:
    """Wrap the collected first-login commands into a runnable, self-removing script."""

    return (
        "#!/usr/bin/env bash\n"
        f"ARCH_LINUX_VERSION={version}\n"
        f"{body.rstrip()}\n"
        "# Remove autostart init files\n"
        f"rm -f /home/{username}/.config/autostart/{INIT_FILENAME}.desktop\n"
        "# Print initialized info\n"
        "echo \"$(date '+%Y-%m-%d %H:%M:%S') | Arch Linux ${ARCH_LINUX_VERSION} | Initialized\"\n"
    )


def autostart_entry(username: str) -> str:
    script = f"/home/{username}/{SYSTEM_DIR}/{INIT_FILENAME}"
    return (
        "[Desktop Entry]\n"
        "Type=Application\n"
        "Name=Arch Linux Initialize\n"
        "Icon=preferences-system\n"
        f"Exec=bash -c '{script}.sh > {script}.log'\n"
    )


class FinalizeInstallationStep:
    step_id = "75_finalize_installation"
    name = "Finalize Arch Linux"

    def enabled(self, props: Dict[str, Any]) -> bool:
        username = props.get("username")
        if not username:
            return False
        root = props.get("target_root") or PATHS.target_root
        pending = target_path(root, f"/home/{username}/{INIT_FILENAME}.sh")
        return pending.is_file() and pending.stat().st_size > 0

    def run(self, props: Dict[str, Any]) -> int:
        require(props, "username")
        dry_run = bool(props.get("debug", False))
        root = props.get("target_root") or PATHS.target_root
        username = props["username"]
        home = f"/home/{username}"
        script = f"{home}/{SYSTEM_DIR}/{INIT_FILENAME}.sh"

        if dry_run:
            logger.info("Would install %s with autostart entry", script)
            return 0

        pending = target_path(root, f"{home}/{INIT_FILENAME}.sh")
        write_file(root, script, init_script(username, pending.read_text(encoding="utf-8")))
        pending.unlink()
        chroot_cmd(root, ["chmod", "+x", script])

        write_file(root, f"{home}/.config/autostart/{INIT_FILENAME}.desktop", autostart_entry(username))
        chown_home(root, username)
        return 0
