from __future__ import annotations

import logging

from .command import run_cmd

logger = logging.getLogger(__name__)


def get_uuid(dev: str, *, dry_run: bool = False) -> str:
    """Return filesystem UUID for a block device."""

    r = run_cmd(["blkid", "-s", "UUID", "-o", "value", dev], capture=True, dry_run=dry_run)
    uuid = r.stdout.strip()
    if dry_run:
        return uuid or "00000000-0000-0000-0000-000000000000"
    if not uuid:
        raise RuntimeError(f"Unable to determine UUID for {dev}")
    return uuid


def get_partuuid(dev: str, *, dry_run: bool = False) -> str:
    r = run_cmd(["lsblk", "-dno", "PARTUUID", dev], capture=True, dry_run=dry_run)
    partuuid = r.stdout.strip()
    if dry_run:
        return partuuid or "00000000-0000-0000-0000-000000000000"
    if not partuuid:
        raise RuntimeError(f"Unable to determine PARTUUID for {dev}")
    return partuuid
