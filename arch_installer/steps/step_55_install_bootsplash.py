from __future__ import annotations

import logging
import re
from typing import Any, Dict

from ..lib.chroot import chroot_cmd
from ..lib.env import PATHS
from ..lib.files import replace_in_file, target_path, write_file
from ..lib.pkg import pacman_install

logger = logging.getLogger(__name__)

PLYMOUTH_CONF = "/etc/plymouth/plymouthd.conf"
SHOW_DELAY = 3
THEME = "BGRT"


def with_show_delay(text: str, delay: int = SHOW_DELAY) -> str:
    """Set ShowDelay in the [Daemon] section, adding the key or section if missing."""

    line = f"ShowDelay={delay}"
    if re.search(r"^ShowDelay=", text, flags=re.MULTILINE):
        return re.sub(r"^ShowDelay=.*$", line, text, flags=re.MULTILINE)
    if re.search(r"^\[Daemon\]", text, flags=re.MULTILINE):
        return re.sub(r"^(\[Daemon\])$", rf"\1\n{line}", text, count=1, flags=re.MULTILINE)
    if text and not text.endswith("\n"):
        text += "\n"
    return f"{text}\n[Daemon]\n{line}\n" if text else f"[Daemon]\n{line}\n"


class InstallBootsplashStep:
    step_id = "55_install_bootsplash"
    name = "Bootsplash"

    def enabled(self, props: Dict[str, Any]) -> bool:
        return bool(props.get("bootsplash_enabled"))

    def run(self, props: Dict[str, Any]) -> int:
        dry_run = bool(props.get("debug", False))
        root = props.get("target_root") or PATHS.target_root

        if not pacman_install(root, ["plymouth", "git", "base-devel"], dry_run=dry_run):
            return 1

        replace_in_file(root, "/etc/mkinitcpio.conf", r"base systemd keyboard", "base systemd plymouth keyboard", dry_run=dry_run)

        conf = target_path(root, PLYMOUTH_CONF)
        current = conf.read_text(encoding="utf-8") if conf.exists() else ""
        write_file(root, PLYMOUTH_CONF, with_show_delay(current), dry_run=dry_run)

        chroot_cmd(root, ["plymouth-set-default-theme", "-R", THEME], dry_run=dry_run)
        logger.info("Plymouth ShowDelay set to %d seconds", SHOW_DELAY)
        return 0
