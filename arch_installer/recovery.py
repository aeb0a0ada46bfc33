"""Recovery mode: unlock and mount an installed system from the Arch ISO, then chroot into it."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from .console import InstallerConsole
from .engine import StepOutcome
from .lib.command import run_cmd
from .properties import partition_path

logger = logging.getLogger(__name__)

RECOVERY_MOUNT_DIR = "/mnt/recovery"
RECOVERY_CRYPT_NAME = "cryptrecovery"
HOSTNAME_PATH = "/proc/sys/kernel/hostname"


def list_disks() -> List[str]:
    # scsi, nvme and virtio block majors
    r = run_cmd(["lsblk", "-I", "8,259,254", "-d", "-o", "KNAME", "-n"], capture=True)
    return [f"/dev/{name.strip()}" for name in r.stdout.splitlines() if name.strip()]


def is_encrypted(partition: str, *, dry_run: bool = False) -> bool:
    r = run_cmd(["lsblk", "-ndo", "FSTYPE", partition], capture=True, check=False, dry_run=dry_run)
    return "crypto_LUKS" in r.stdout


def on_live_iso(hostname_path: str = HOSTNAME_PATH) -> bool:
    try:
        return Path(hostname_path).read_text(encoding="utf-8").strip() == "archiso"
    except OSError:
        return False


def recovery_unmount(mount_dir: str = RECOVERY_MOUNT_DIR, *, dry_run: bool = False) -> None:
    """Best effort; each call may find nothing to release."""

    run_cmd(["swapoff", "-a"], check=False, dry_run=dry_run)
    run_cmd(["umount", "-A", "-R", mount_dir], check=False, dry_run=dry_run)
    run_cmd(["cryptsetup", "close", RECOVERY_CRYPT_NAME], check=False, dry_run=dry_run)


def recover(
    ui: InstallerConsole,
    *,
    disk: Optional[str] = None,
    mount_dir: str = RECOVERY_MOUNT_DIR,
    dry_run: bool = False,
) -> StepOutcome:
    """Open the installed system on `disk` and hand the terminal to arch-chroot.

    Everything mounted or unlocked here is released again when the chroot
    shell exits, also when mounting fails halfway.
    """

    if not disk:
        disk = ui.choose("Select Arch Linux Disk", list_disks())
        if not disk:
            return StepOutcome.CANCELLED

    ui.title("Recovery")
    if not dry_run and not Path(disk).exists():
        ui.fail(f"Disk {disk} does not exist")
        return StepOutcome.FAILED

    boot_partition = partition_path(disk, 1)
    root_partition = partition_path(disk, 2)

    encrypted = is_encrypted(root_partition, dry_run=dry_run)
    if encrypted:
        ui.warn(f"The disk {disk} is encrypted with LUKS")
    else:
        ui.info(f"The disk {disk} is not encrypted")

    if not dry_run and not on_live_iso():
        ui.fail("You must execute the Recovery from Arch ISO!")
        return StepOutcome.FAILED

    recovery_unmount(mount_dir, dry_run=dry_run)
    if not dry_run:
        Path(mount_dir, "boot").mkdir(parents=True, exist_ok=True)

    root_device = root_partition
    if encrypted:
        password = ui.secret("Enter Encryption Password")
        if password is None:
            return StepOutcome.CANCELLED
        opened = run_cmd(
            ["cryptsetup", "open", root_partition, RECOVERY_CRYPT_NAME],
            input_text=password,
            secret_input=True,
            capture=True,
            check=False,
            dry_run=dry_run,
        )
        if not opened.ok:
            ui.fail("Wrong encryption password")
            return StepOutcome.FAILED
        root_device = f"/dev/mapper/{RECOVERY_CRYPT_NAME}"

    try:
        run_cmd(["mount", root_device, mount_dir], dry_run=dry_run)
        run_cmd(["mount", boot_partition, f"{mount_dir}/boot"], dry_run=dry_run)
        ui.success("!! YOU ARE NOW ON YOUR RECOVERY SYSTEM !!")
        ui.warn("Leave with command 'exit'")
        # the shell's exit code is the operator's business
        run_cmd(["arch-chroot", mount_dir], check=False, dry_run=dry_run)
    finally:
        recovery_unmount(mount_dir, dry_run=dry_run)

    ui.success("Exit Recovery")
    return StepOutcome.SUCCESS
