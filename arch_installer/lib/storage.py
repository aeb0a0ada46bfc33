from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .command import run_cmd

logger = logging.getLogger(__name__)

CRYPT_NAME = "cryptroot"
SUBVOLUMES = {"@": "", "@home": "home", "@snapshots": ".snapshots"}


@dataclass(frozen=True)
class PartitionPlan:
    disk: str
    boot_part: str
    root_part: str
    encryption_password: Optional[str] = None
    esp_size: str = "+1G"

    @property
    def encrypted(self) -> bool:
        return self.encryption_password is not None

    @property
    def root_device(self) -> str:
        return f"/dev/mapper/{CRYPT_NAME}" if self.encrypted else self.root_part


def wipe_and_partition(plan: PartitionPlan, *, dry_run: bool = False) -> None:
    """GPT with an EFI system partition and one root partition for the rest."""

    disk = plan.disk
    logger.info("Partitioning disk=%s", disk)

    run_cmd(["wipefs", "-af", disk], dry_run=dry_run)
    run_cmd(["sgdisk", "--zap-all", disk], dry_run=dry_run)
    run_cmd(["sgdisk", "-o", disk], dry_run=dry_run)
    run_cmd(["sgdisk", "-n", f"1:0:{plan.esp_size}", "-t", "1:ef00", "-c", "1:boot", "--align-end", disk], dry_run=dry_run)
    run_cmd(["sgdisk", "-n", "2:0:0", "-t", "2:8300", "-c", "2:root", "--align-end", disk], dry_run=dry_run)
    run_cmd(["partprobe", disk], dry_run=dry_run)


def open_encrypted_root(plan: PartitionPlan, *, dry_run: bool = False) -> None:
    if not plan.encrypted:
        return
    logger.info("Enable Disk Encryption for %s", plan.root_part)
    run_cmd(["cryptsetup", "luksFormat", "--batch-mode", plan.root_part],
            input_text=plan.encryption_password, secret_input=True, dry_run=dry_run)
    run_cmd(["cryptsetup", "open", plan.root_part, CRYPT_NAME],
            input_text=plan.encryption_password, secret_input=True, dry_run=dry_run)


def format_and_mount(plan: PartitionPlan, *, target_root: str, dry_run: bool = False) -> None:
    """FAT32 boot, btrfs root with @, @home and @snapshots subvolumes, mounted at target_root."""

    root_dev = plan.root_device

    run_cmd(["mkfs.fat", "-F", "32", "-n", "BOOT", plan.boot_part], dry_run=dry_run)
    run_cmd(["mkfs.btrfs", "-f", "-L", "ROOT", root_dev], dry_run=dry_run)

    run_cmd(["mount", root_dev, target_root], dry_run=dry_run)
    for subvol in SUBVOLUMES:
        run_cmd(["btrfs", "subvolume", "create", f"{target_root}/{subvol}"], dry_run=dry_run)
    run_cmd(["umount", target_root], dry_run=dry_run)

    for subvol, mountpoint in SUBVOLUMES.items():
        dst = f"{target_root}/{mountpoint}".rstrip("/")
        run_cmd(["mkdir", "-p", dst], dry_run=dry_run)
        run_cmd(["mount", "-o", f"subvol={subvol}", root_dev, dst], dry_run=dry_run)

    run_cmd(["mkdir", "-p", f"{target_root}/boot"], dry_run=dry_run)
    run_cmd(["mount", "-v", plan.boot_part, f"{target_root}/boot"], dry_run=dry_run)


def release_target(target_root: str, *, dry_run: bool = False) -> None:
    """Best-effort teardown of a previous attempt (swap, mounts, LUKS, LVM)."""

    run_cmd(["swapoff", "-a"], check=False, dry_run=dry_run)
    r = run_cmd(["umount", "-f", "-A", "-R", target_root], check=False, capture=True, dry_run=dry_run)
    if "target is busy" in r.stderr:
        run_cmd(["fuser", "-km", target_root], check=False, dry_run=dry_run)
        run_cmd(["umount", "-f", "-A", "-R", target_root], check=False, dry_run=dry_run)
    run_cmd(["cryptsetup", "close", CRYPT_NAME], check=False, dry_run=dry_run)
    run_cmd(["vgchange", "-an"], check=False, dry_run=dry_run)
