from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..lib.chroot import enable_services
from ..lib.env import PATHS
from ..lib.files import write_file

logger = logging.getLogger(__name__)

REFLECTOR_CONF = "/etc/xdg/reflector/reflector.conf"


def reflector_conf(region: Optional[str]) -> str:
    lines = [
        "# Reflector configuration for automatic mirror updates",
        "--save /etc/pacman.d/mirrorlist",
        "--protocol https",
        "--latest 10",
        "--sort rate",
    ]
    if region and region != "Worldwide":
        # Country names with spaces need quoting in the config file
        lines.append(f'--country "{region}"' if " " in region else f"--country {region}")
    return "\n".join(lines) + "\n"


class ConfigureMirrorMonitoringStep:
    step_id = "90_configure_mirror_monitoring"
    name = "Configure Mirror Monitoring"

    def run(self, props: Dict[str, Any]) -> int:
        dry_run = bool(props.get("debug", False))
        root = props.get("target_root") or PATHS.target_root
        region = props.get("mirror_region")

        write_file(root, REFLECTOR_CONF, reflector_conf(region), dry_run=dry_run)
        logger.info("Reflector configured with region: %s", region or "Worldwide")

        enable_services(root, ["reflector.timer"], dry_run=dry_run)
        logger.info("Reflector timer enabled for weekly mirror updates")
        return 0
