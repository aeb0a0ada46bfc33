from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.chroot import chroot_cmd
from ..lib.env import PATHS
from ..lib.files import replace_in_file

logger = logging.getLogger(__name__)


class EnableMultilibStep:
    step_id = "40_enable_multilib"
    name = "Enable Multilib"

    def enabled(self, props: Dict[str, Any]) -> bool:
        return bool(props.get("multilib_enabled"))

    def run(self, props: Dict[str, Any]) -> int:
        dry_run = bool(props.get("debug", False))
        root = props.get("target_root") or PATHS.target_root

        # Uncomments the [multilib] header and its Include line
        count = replace_in_file(
            root,
            "/etc/pacman.conf",
            r"^#(\[multilib\])\n#(Include = .*)$",
            r"\1\n\2",
            dry_run=dry_run,
        )
        if count == 0 and not dry_run:
            logger.warning("No commented [multilib] section found in pacman.conf")

        chroot_cmd(root, ["pacman", "-Syyu", "--noconfirm"], dry_run=dry_run)
        return 0
