from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

from ..lib.chroot import enable_services
from ..lib.command import run_cmd
from ..lib.env import PATHS
from ..lib.pkg import pacman_install

logger = logging.getLogger(__name__)

# systemd-detect-virt id -> (label, packages, services)
GUEST_TOOLS: Dict[str, Tuple[str, List[str], List[str]]] = {
    "kvm": (
        "KVM",
        ["spice", "spice-vdagent", "spice-protocol", "spice-gtk", "qemu-guest-agent"],
        ["qemu-guest-agent"],
    ),
    "vmware": ("VMWare Workstation/ESXi", ["open-vm-tools"], ["vmtoolsd", "vmware-vmblock-fuse"]),
    "oracle": ("VirtualBox", ["virtualbox-guest-utils"], ["vboxservice"]),
    "microsoft": ("Hyper-V", ["hyperv"], ["hv_fcopy_daemon", "hv_kvp_daemon", "hv_vss_daemon"]),
}


def detect_virt(*, dry_run: bool = False) -> str:
    # exits non-zero with "none" on bare metal
    r = run_cmd(["systemd-detect-virt"], check=False, capture=True, dry_run=dry_run)
    return r.stdout.strip() or "none"


class InstallVmSupportStep:
    step_id = "70_install_vm_support"
    name = "VM Support"

    def enabled(self, props: Dict[str, Any]) -> bool:
        return bool(props.get("vm_support_enabled"))

    def run(self, props: Dict[str, Any]) -> int:
        dry_run = bool(props.get("debug", False))
        root = props.get("target_root") or PATHS.target_root

        virt = detect_virt(dry_run=dry_run)
        if virt not in GUEST_TOOLS:
            logger.info("No VM detected")
            return 0

        label, packages, services = GUEST_TOOLS[virt]
        logger.info("%s detected", label)
        if not pacman_install(root, packages, dry_run=dry_run):
            return 1
        enable_services(root, services, dry_run=dry_run)
        return 0
