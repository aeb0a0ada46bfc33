from __future__ import annotations

import logging
import re
from typing import Any, Dict, List

from ..lib.block import get_partuuid, get_uuid
from ..lib.chroot import chown_home, chroot_cmd, enable_services
from ..lib.command import run_cmd
from ..lib.env import PATHS
from ..lib.files import append_file, replace_in_file, write_file
from ..lib.pkg import pacstrap
from ..lib.storage import CRYPT_NAME
from ..properties import require

logger = logging.getLogger(__name__)

CORE_PACKAGES = ["base", "sudo", "linux-firmware", "zram-generator", "networkmanager", "reflector", "btrfs-progs"]

CORE_SERVICES = [
    "NetworkManager",
    "fstrim.timer",
    "systemd-zram-setup@zram0.service",
    "systemd-oomd.service",
    "systemd-boot-update.service",
    "systemd-timesyncd.service",
]

ZRAM_GENERATOR_CONF = "[zram0]\nzram-size = ram / 2\ncompression-algorithm = zstd\n"

ZRAM_SYSCTL_CONF = (
    "vm.swappiness = 180\n"
    "vm.watermark_boost_factor = 0\n"
    "vm.watermark_scale_factor = 125\n"
    "vm.page-cluster = 0\n"
)

HOSTS = (
    "# <ip>     <hostname.domain.org>  <hostname>\n"
    "127.0.0.1  localhost.localdomain  localhost\n"
    "::1        localhost.localdomain  localhost\n"
)

LOADER_CONF = "default arch.conf\nconsole-mode auto\ntimeout 2\neditor yes\n"


def mkinitcpio_hooks(encrypted: bool) -> str:
    hooks = ["base", "systemd", "keyboard", "autodetect", "microcode", "modconf", "sd-vconsole", "block"]
    if encrypted:
        hooks.append("sd-encrypt")
    hooks += ["filesystems", "fsck"]
    return f"HOOKS=({' '.join(hooks)})"


def kernel_args(props: Dict[str, Any], *, root_id: str) -> List[str]:
    """Boot entry options. Zswap is disabled because swap lives on zram."""

    if props.get("encryption_enabled"):
        args = [f"rd.luks.name={root_id}={CRYPT_NAME}", f"root=/dev/mapper/{CRYPT_NAME}", "rootflags=subvol=@"]
    else:
        args = [f"root=PARTUUID={root_id}", "rootflags=subvol=@"]
    args += ["rw", "init=/usr/lib/systemd/systemd", "zswap.enabled=0"]
    if props.get("core_tweaks_enabled"):
        args.append("nowatchdog")
    if props.get("bootsplash_enabled") or props.get("core_tweaks_enabled"):
        args += ["quiet", "splash", "vt.global_cursor_default=0"]
    return args


def boot_entry(title: str, kernel: str, initrd: str, options: List[str]) -> str:
    return (
        f"title   {title}\n"
        f"linux   /vmlinuz-{kernel}\n"
        f"initrd  /{initrd}\n"
        f"options {' '.join(options)}\n"
    )


class PacstrapCoreStep:
    step_id = "30_pacstrap_core"
    name = "Pacstrap Arch Linux Core"

    def run(self, props: Dict[str, Any]) -> int:
        require(props, "kernel", "username", "password", "root_partition", "timezone", "locale_lang")
        dry_run = bool(props.get("debug", False))
        root = props.get("target_root") or PATHS.target_root
        kernel = props["kernel"]
        username = props["username"]
        encrypted = bool(props.get("encryption_enabled"))

        packages = [kernel, *CORE_PACKAGES]
        microcode = props.get("microcode")
        if microcode and microcode != "none":
            packages.append(microcode)
        pacstrap(root, packages, dry_run=dry_run)

        fstab = run_cmd(["genfstab", "-U", root], capture=True, dry_run=dry_run)
        append_file(root, "/etc/fstab", fstab.stdout, dry_run=dry_run)

        chroot_cmd(root, ["ln", "-sf", f"/usr/share/zoneinfo/{props['timezone']}", "/etc/localtime"], dry_run=dry_run)
        chroot_cmd(root, ["hwclock", "--systohc"], dry_run=dry_run)

        write_file(root, "/etc/systemd/zram-generator.conf", ZRAM_GENERATOR_CONF, dry_run=dry_run)
        write_file(root, "/etc/sysctl.d/99-vm-zram-parameters.conf", ZRAM_SYSCTL_CONF, dry_run=dry_run)

        vconsole = f"KEYMAP={props.get('vconsole_keymap') or 'us'}\n"
        if props.get("vconsole_font"):
            vconsole += f"FONT={props['vconsole_font']}\n"
        write_file(root, "/etc/vconsole.conf", vconsole, dry_run=dry_run)

        write_file(root, "/etc/locale.conf", f"LANG={props['locale_lang']}.UTF-8\n", dry_run=dry_run)
        for entry in props.get("locale_gen_list") or []:
            replace_in_file(root, "/etc/locale.gen", rf"^#{re.escape(entry)}", entry, dry_run=dry_run)
        chroot_cmd(root, ["locale-gen"], dry_run=dry_run)

        write_file(root, "/etc/hostname", f"{props.get('hostname') or 'archlinux'}\n", dry_run=dry_run)
        write_file(root, "/etc/hosts", HOSTS, dry_run=dry_run)

        replace_in_file(root, "/etc/mkinitcpio.conf", r"^HOOKS=\(.*\)$", mkinitcpio_hooks(encrypted), dry_run=dry_run)
        chroot_cmd(root, ["mkinitcpio", "-P"], dry_run=dry_run)

        self._install_bootloader(props, root=root, dry_run=dry_run)

        chroot_cmd(root, ["useradd", "-m", "-G", "wheel", "-s", "/bin/bash", username], dry_run=dry_run)
        run_cmd(["mkdir", "-p", f"{root}/home/{username}/.config", f"{root}/home/{username}/.local/share"], dry_run=dry_run)
        chown_home(root, username, dry_run=dry_run)
        replace_in_file(root, "/etc/sudoers", r"^# %wheel ALL=\(ALL:ALL\) ALL", "%wheel ALL=(ALL:ALL) ALL", dry_run=dry_run)

        password = props["password"]
        for user in ("root", username):
            chroot_cmd(root, ["chpasswd"], input_text=f"{user}:{password}\n", secret_input=True, dry_run=dry_run)

        enable_services(root, CORE_SERVICES, dry_run=dry_run)

        if props.get("core_tweaks_enabled"):
            self._core_tweaks(root, dry_run=dry_run)

        return 0

    def _install_bootloader(self, props: Dict[str, Any], *, root: str, dry_run: bool) -> None:
        kernel = props["kernel"]
        part = props["root_partition"]
        root_id = get_uuid(part, dry_run=dry_run) if props.get("encryption_enabled") else get_partuuid(part, dry_run=dry_run)
        options = kernel_args(props, root_id=root_id)

        chroot_cmd(root, ["bootctl", "--esp-path=/boot", "install"], dry_run=dry_run)
        write_file(root, "/boot/loader/loader.conf", LOADER_CONF, dry_run=dry_run)
        write_file(
            root,
            "/boot/loader/entries/arch.conf",
            boot_entry("Arch Linux", kernel, f"initramfs-{kernel}.img", options),
            dry_run=dry_run,
        )
        write_file(
            root,
            "/boot/loader/entries/arch-fallback.conf",
            boot_entry("Arch Linux (Fallback)", kernel, f"initramfs-{kernel}-fallback.img", options),
            dry_run=dry_run,
        )

    def _core_tweaks(self, root: str, *, dry_run: bool) -> None:
        append_file(root, "/etc/sudoers", "\n## Enable sudo password feedback\nDefaults pwfeedback\n", dry_run=dry_run)
        replace_in_file(root, "/etc/pacman.conf", r"^#ParallelDownloads", "ParallelDownloads", dry_run=dry_run)
        replace_in_file(root, "/etc/pacman.conf", r"^#Color", "Color\nILoveCandy", dry_run=dry_run)
        append_file(root, "/etc/modprobe.d/blacklist-watchdog.conf", "blacklist sp5100_tco\nblacklist iTCO_wdt\n", dry_run=dry_run)
        replace_in_file(root, "/etc/makepkg.conf", r"^(OPTIONS=.*[ (])debug", r"\1!debug", dry_run=dry_run)
