from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    # where the new system is assembled
    target_root: str = "/mnt"
    # parent of the per-run .tmp.* scratch dir
    scratch_base: str = "."


PATHS = Paths()

# first-login script in the user's home, filled by steps and installed by the finalize step
INIT_FILENAME = "initialize"
