from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..lib.chroot import chroot_cmd
from ..lib.env import PATHS
from ..lib.files import replace_in_file, write_file
from ..lib.pkg import pacman_install
from ..properties import require

logger = logging.getLogger(__name__)

DRIVERS: Dict[str, Dict[str, List[str]]] = {
    "mesa": {
        "packages": ["mesa", "mesa-utils", "vkd3d"],
        "multilib": ["lib32-mesa", "lib32-mesa-utils", "lib32-vkd3d"],
        "modules": [],
    },
    "intel_i915": {
        "packages": ["vulkan-intel", "vkd3d", "libva-intel-driver"],
        "multilib": ["lib32-vulkan-intel", "lib32-vkd3d", "lib32-libva-intel-driver"],
        "modules": ["i915"],
    },
    "nvidia": {
        "packages": ["nvidia-dkms", "nvidia-settings", "nvidia-utils", "opencl-nvidia", "vkd3d"],
        "multilib": ["lib32-nvidia-utils", "lib32-opencl-nvidia", "lib32-vkd3d"],
        "modules": ["nvidia", "nvidia_modeset", "nvidia_uvm", "nvidia_drm"],
    },
    "amd": {
        "packages": ["mesa", "mesa-utils", "xf86-video-amdgpu", "vulkan-radeon", "vkd3d"],
        "multilib": ["lib32-mesa", "lib32-vulkan-radeon", "lib32-vkd3d"],
        "modules": ["amdgpu"],
    },
    "ati": {
        "packages": ["mesa", "mesa-utils", "xf86-video-ati", "vkd3d"],
        "multilib": ["lib32-mesa", "lib32-vkd3d"],
        "modules": ["radeon"],
    },
}


def nvidia_hook(kernel: str) -> str:
    return (
        "[Trigger]\n"
        "Operation=Install\n"
        "Operation=Upgrade\n"
        "Operation=Remove\n"
        "Type=Package\n"
        "Target=nvidia\n"
        f"Target={kernel}\n"
        "\n"
        "[Action]\n"
        "Description=Update NVIDIA module in initcpio\n"
        "Depends=mkinitcpio\n"
        "When=PostTransaction\n"
        "NeedsTargets\n"
        "Exec=/bin/sh -c 'while read -r trg; do case $trg in linux*) exit 0; esac; done; /usr/bin/mkinitcpio -P'\n"
    )


def driver_packages(driver: str, props: Dict[str, Any]) -> List[str]:
    driver_set = DRIVERS[driver]
    packages = list(driver_set["packages"])
    if driver == "nvidia":
        packages.insert(0, f"{props['kernel']}-headers")
    if props.get("multilib_enabled"):
        packages += driver_set["multilib"]
    return packages


class InstallGraphicsDriverStep:
    step_id = "65_install_graphics_driver"
    name = "Desktop Driver"

    def enabled(self, props: Dict[str, Any]) -> bool:
        driver = props.get("graphics_driver")
        return bool(driver) and driver != "none"

    def run(self, props: Dict[str, Any]) -> int:
        require(props, "graphics_driver", "kernel")
        dry_run = bool(props.get("debug", False))
        root = props.get("target_root") or PATHS.target_root
        driver = props["graphics_driver"]

        if driver not in DRIVERS:
            raise ValueError(f"Unsupported graphics driver: {driver}")

        if not pacman_install(root, driver_packages(driver, props), dry_run=dry_run):
            return 1

        if driver == "nvidia":
            write_file(root, "/etc/modprobe.d/nvidia.conf", "options nvidia_drm modeset=1 fbdev=1\n", dry_run=dry_run)
            write_file(root, "/etc/pacman.d/hooks/nvidia.hook", nvidia_hook(props["kernel"]), dry_run=dry_run)
            # Wayland on the proprietary driver
            chroot_cmd(root, ["ln", "-sf", "/dev/null", "/etc/udev/rules.d/61-gdm.rules"], dry_run=dry_run)

        modules = DRIVERS[driver]["modules"]
        if modules:
            replace_in_file(root, "/etc/mkinitcpio.conf", r"^MODULES=\(.*\)", f"MODULES=({' '.join(modules)})", dry_run=dry_run)
            chroot_cmd(root, ["mkinitcpio", "-P"], dry_run=dry_run)

        logger.info("Graphics driver installed: %s", driver)
        return 0
