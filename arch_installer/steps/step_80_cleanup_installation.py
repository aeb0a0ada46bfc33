from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.chroot import chown_home, chroot_cmd
from ..lib.env import PATHS
from ..properties import require

logger = logging.getLogger(__name__)

REMOVE_ORPHANS = "pacman -Qtd &>/dev/null && pacman -Rns --noconfirm $(pacman -Qtdq) || true"


class CleanupInstallationStep:
    step_id = "80_cleanup_installation"
    name = "Cleanup Installation"

    def run(self, props: Dict[str, Any]) -> int:
        require(props, "username")
        dry_run = bool(props.get("debug", False))
        root = props.get("target_root") or PATHS.target_root

        chown_home(root, props["username"], dry_run=dry_run)
        chroot_cmd(root, ["bash", "-c", REMOVE_ORPHANS], dry_run=dry_run)
        return 0
