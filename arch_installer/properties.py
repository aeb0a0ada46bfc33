from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "./installer.yaml"

SECRET_KEYS = ("password",)

_TRUE = {"1", "true", "yes", "on"}


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"json", "yaml", "yml"}:
        return ext
    # Default to YAML for unknown extensions (installer.conf and friends).
    return "yaml"


def load_properties(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}

    text = p.read_text(encoding="utf-8")
    if _detect_format(p) == "json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Properties file must be a mapping, got {type(data)}")

    return data


def save_properties(path: str, props: Mapping[str, Any], *, include_secrets: bool = False) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    data = {k: v for k, v in props.items() if include_secrets or k not in SECRET_KEYS}
    if _detect_format(p) == "json":
        p.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    else:
        p.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")


def forget_secrets(props: Dict[str, Any]) -> None:
    for key in SECRET_KEYS:
        props.pop(key, None)


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE


def partition_path(disk: str, n: int) -> str:
    # nvme/mmcblk devices use p suffix
    if disk.endswith(tuple("0123456789")):
        return f"{disk}p{n}"
    return f"{disk}{n}"


def detect_microcode(cpuinfo_path: str = "/proc/cpuinfo") -> Optional[str]:
    try:
        cpuinfo = Path(cpuinfo_path).read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    if "GenuineIntel" in cpuinfo:
        return "intel-ucode"
    if "AuthenticAMD" in cpuinfo:
        return "amd-ucode"
    return None


def apply_env(props: Dict[str, Any], environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """DEBUG=true / FORCE=true in the environment switch the matching modes on."""

    env = os.environ if environ is None else environ
    for name in ("debug", "force"):
        raw = env.get(name.upper())
        if raw is not None and _flag(raw):
            props[name] = True
    return props


def ensure_defaults(props: Dict[str, Any]) -> Dict[str, Any]:
    """Fill required keys with sane defaults (without overriding user values)."""

    props.setdefault("debug", False)
    props.setdefault("force", False)

    props.setdefault("hostname", "archlinux")
    props.setdefault("timezone", "UTC")
    props.setdefault("locale_lang", "en_US")
    props.setdefault("locale_gen_list", ["en_US.UTF-8 UTF-8"])
    props.setdefault("vconsole_keymap", "us")
    props.setdefault("vconsole_font", None)
    props.setdefault("kernel", "linux-zen")
    props.setdefault("mirror_region", "Worldwide")

    props.setdefault("encryption_enabled", False)
    props.setdefault("core_tweaks_enabled", True)
    props.setdefault("multilib_enabled", True)
    props.setdefault("aur_helper", "paru")
    props.setdefault("bootsplash_enabled", True)
    props.setdefault("desktop_enabled", True)
    props.setdefault("desktop_extras_enabled", True)
    props.setdefault("desktop_slim_enabled", False)
    props.setdefault("desktop_keyboard_layout", "us")
    props.setdefault("desktop_keyboard_model", "pc105")
    props.setdefault("desktop_keyboard_variant", "")
    props.setdefault("graphics_driver", "mesa")
    props.setdefault("vm_support_enabled", True)
    props.setdefault("ecn_enabled", True)

    props.setdefault("unmount", bool(props["force"]))
    props.setdefault("reboot", False)

    if not props.get("microcode"):
        props["microcode"] = detect_microcode() or "none"

    for key in ("debug", "force", "encryption_enabled", "core_tweaks_enabled", "multilib_enabled",
                "bootsplash_enabled", "desktop_enabled", "desktop_extras_enabled", "desktop_slim_enabled", "vm_support_enabled",
                "ecn_enabled", "unmount", "reboot"):
        props[key] = _flag(props[key])

    disk = props.get("disk")
    if disk:
        props.setdefault("boot_partition", partition_path(disk, 1))
        props.setdefault("root_partition", partition_path(disk, 2))

    return props


def require(props: Mapping[str, Any], *keys: str) -> None:
    missing = [k for k in keys if not props.get(k)]
    if missing:
        raise RuntimeError(f"Missing required properties: {', '.join(missing)}")


def summary(props: Mapping[str, Any]) -> Dict[str, Any]:
    """Properties safe to show the operator."""

    return {k: ("*****" if k in SECRET_KEYS else v) for k, v in props.items()}
