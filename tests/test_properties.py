"""Tests for installer properties."""
from __future__ import annotations

import json

import pytest
import yaml

from arch_installer import properties as props_mod
from arch_installer.properties import (
    apply_env,
    detect_microcode,
    ensure_defaults,
    forget_secrets,
    load_properties,
    partition_path,
    require,
    save_properties,
    summary,
)


class TestLoadSave:
    def test_missing_file_is_empty(self, tmp_path):
        assert load_properties(str(tmp_path / "nope.yaml")) == {}

    def test_yaml_roundtrip_drops_secrets(self, tmp_path):
        path = tmp_path / "installer.yaml"
        save_properties(str(path), {"username": "tux", "password": "secret"})
        assert yaml.safe_load(path.read_text(encoding="utf-8")) == {"username": "tux"}
        assert load_properties(str(path)) == {"username": "tux"}

    def test_json_keeps_secrets_when_asked(self, tmp_path):
        path = tmp_path / "installer.json"
        save_properties(str(path), {"password": "secret"}, include_secrets=True)
        assert json.loads(path.read_text(encoding="utf-8")) == {"password": "secret"}

    def test_unknown_extension_is_yaml(self, tmp_path):
        path = tmp_path / "installer.conf"
        path.write_text("hostname: box\n", encoding="utf-8")
        assert load_properties(str(path)) == {"hostname": "box"}

    def test_non_mapping_is_rejected(self, tmp_path):
        path = tmp_path / "installer.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_properties(str(path))


class TestDefaults:
    def test_defaults_do_not_override(self, monkeypatch):
        monkeypatch.setattr(props_mod, "detect_microcode", lambda: "amd-ucode")
        props = ensure_defaults({"kernel": "linux", "multilib_enabled": "false"})
        assert props["kernel"] == "linux"
        assert props["multilib_enabled"] is False
        assert props["aur_helper"] == "paru"
        assert props["microcode"] == "amd-ucode"
        assert props["unmount"] is False

    def test_partitions_derived_from_disk(self, monkeypatch):
        monkeypatch.setattr(props_mod, "detect_microcode", lambda: None)
        props = ensure_defaults({"disk": "/dev/nvme0n1"})
        assert props["boot_partition"] == "/dev/nvme0n1p1"
        assert props["root_partition"] == "/dev/nvme0n1p2"
        assert props["microcode"] == "none"

    def test_force_unmounts_by_default(self, monkeypatch):
        monkeypatch.setattr(props_mod, "detect_microcode", lambda: None)
        assert ensure_defaults({"force": True})["unmount"] is True

    @pytest.mark.parametrize(
        "disk, expected",
        [("/dev/sda", "/dev/sda2"), ("/dev/vda", "/dev/vda2"), ("/dev/mmcblk0", "/dev/mmcblk0p2")],
    )
    def test_partition_path(self, disk, expected):
        assert partition_path(disk, 2) == expected


class TestHelpers:
    def test_env_switches_modes_on(self):
        props = apply_env({}, {"DEBUG": "true", "FORCE": "0"})
        assert props == {"debug": True}

    def test_forget_and_summary(self):
        props = {"username": "tux", "password": "secret"}
        assert summary(props)["password"] == "*****"
        forget_secrets(props)
        assert props == {"username": "tux"}

    def test_require_lists_missing_keys(self):
        with pytest.raises(RuntimeError, match="disk, username"):
            require({"hostname": "box"}, "disk", "username", "hostname")

    def test_detect_microcode(self, tmp_path):
        cpuinfo = tmp_path / "cpuinfo"
        cpuinfo.write_text("vendor_id\t: GenuineIntel\n", encoding="utf-8")
        assert detect_microcode(str(cpuinfo)) == "intel-ucode"
        assert detect_microcode(str(tmp_path / "missing")) is None
