from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from ..lib.command import run_cmd
from ..lib.env import PATHS
from ..lib.storage import release_target

logger = logging.getLogger(__name__)


def _reflector_argv(region: str | None) -> list[str]:
    argv = ["reflector", "--latest", "10", "--protocol", "https", "--sort", "rate", "--save", "/etc/pacman.d/mirrorlist"]
    if region and region != "Worldwide":
        argv += ["--country", region]
    return argv


class InitInstallationStep:
    step_id = "10_init_installation"
    name = "Initialize Installation"

    def _check_live_environment(self) -> int:
        if not Path("/sys/firmware/efi").exists():
            logger.error("BIOS not supported! Please set your boot mode to UEFI.")
            return 1
        logger.info("UEFI detected")

        r = run_cmd(["bootctl", "status"], check=False, capture=True)
        secure_boot = [line for line in r.stdout.splitlines() if "Secure Boot" in line]
        if not secure_boot or "disabled" not in secure_boot[0]:
            logger.error("You must disable Secure Boot in UEFI to continue installation")
            return 1
        logger.info("Secure Boot: disabled")

        if Path("/proc/sys/kernel/hostname").read_text(encoding="utf-8").strip() != "archiso":
            logger.error("You must execute the Installer from Arch ISO!")
            return 1
        logger.info("Arch ISO detected")
        return 0

    def run(self, props: Dict[str, Any]) -> int:
        dry_run = bool(props.get("debug", False))
        target_root = props.get("target_root") or PATHS.target_root

        run_cmd(["pacman", "-Sy", "--noconfirm", "reflector"], dry_run=dry_run)

        if not dry_run:
            rc = self._check_live_environment()
            if rc != 0:
                return rc

        region = props.get("mirror_region")
        if region:
            r = run_cmd(_reflector_argv(region), check=False, dry_run=dry_run)
            if not r.ok:
                logger.warning("Failed to update mirrors for region: %s, using worldwide mirrors", region)
                run_cmd(_reflector_argv(None), dry_run=dry_run)
            logger.info("Mirrors updated successfully")
        else:
            logger.info("No mirror region specified, using default mirrorlist")

        run_cmd(["pacman", "-Syy", "--noconfirm"], dry_run=dry_run)
        run_cmd(["rm", "-f", "/var/lib/pacman/db.lck"], dry_run=dry_run)
        run_cmd(["timedatectl", "set-ntp", "true"], dry_run=dry_run)
        release_target(target_root, dry_run=dry_run)

        if not props.get("ecn_enabled", True):
            run_cmd(["sysctl", "net.ipv4.tcp_ecn=0"], dry_run=dry_run)

        run_cmd(["pacman", "-Sy", "--noconfirm", "archlinux-keyring"], dry_run=dry_run)
        return 0
