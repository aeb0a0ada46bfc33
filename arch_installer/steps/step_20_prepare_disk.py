from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.env import PATHS
from ..lib.storage import PartitionPlan, format_and_mount, open_encrypted_root, wipe_and_partition
from ..properties import require

logger = logging.getLogger(__name__)


class PrepareDiskStep:
    step_id = "20_prepare_disk"
    name = "Prepare Disk"

    def run(self, props: Dict[str, Any]) -> int:
        require(props, "disk", "boot_partition", "root_partition")
        dry_run = bool(props.get("debug", False))
        target_root = props.get("target_root") or PATHS.target_root

        encrypted = bool(props.get("encryption_enabled", False))
        if encrypted:
            require(props, "password")

        plan = PartitionPlan(
            disk=props["disk"],
            boot_part=props["boot_partition"],
            root_part=props["root_partition"],
            encryption_password=props["password"] if encrypted else None,
        )

        wipe_and_partition(plan, dry_run=dry_run)
        open_encrypted_root(plan, dry_run=dry_run)
        format_and_mount(plan, target_root=target_root, dry_run=dry_run)

        logger.info("Partitioned and mounted %s at %s", plan.disk, target_root)
        return 0
