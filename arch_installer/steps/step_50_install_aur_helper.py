from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.env import PATHS
from ..lib.files import replace_in_file
from ..lib.pkg import aur_install, pacman_install
from ..properties import require

logger = logging.getLogger(__name__)

PARU_VARIANTS = {"paru", "paru-bin", "paru-git"}


class InstallAurHelperStep:
    step_id = "50_install_aur_helper"
    name = "AUR Helper"

    def enabled(self, props: Dict[str, Any]) -> bool:
        helper = props.get("aur_helper")
        return bool(helper) and helper != "none"

    def run(self, props: Dict[str, Any]) -> int:
        require(props, "username", "aur_helper")
        dry_run = bool(props.get("debug", False))
        root = props.get("target_root") or PATHS.target_root
        helper = props["aur_helper"]

        if not pacman_install(root, ["git", "base-devel"], dry_run=dry_run):
            return 1
        if not aur_install(root, props["username"], helper, dry_run=dry_run):
            return 1

        if helper in PARU_VARIANTS:
            replace_in_file(root, "/etc/paru.conf", r"^#BottomUp", "BottomUp", dry_run=dry_run)
            replace_in_file(root, "/etc/paru.conf", r"^#SudoLoop", "SudoLoop", dry_run=dry_run)

        logger.info("AUR helper installed: %s", helper)
        return 0
