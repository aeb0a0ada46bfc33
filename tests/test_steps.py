"""Dry-run tests for the installation steps and their config renderers."""
from __future__ import annotations

import pytest

from arch_installer.main import build_steps
from arch_installer.pipeline import is_enabled
from arch_installer.steps import step_60_install_desktop, step_75_finalize_installation
from arch_installer.steps.step_30_pacstrap_core import kernel_args, mkinitcpio_hooks
from arch_installer.steps.step_55_install_bootsplash import with_show_delay
from arch_installer.steps.step_60_install_desktop import INIT_SCRIPT, InstallDesktopStep, desktop_packages
from arch_installer.steps.step_65_install_graphics_driver import InstallGraphicsDriverStep, driver_packages
from arch_installer.steps.step_75_finalize_installation import FinalizeInstallationStep
from arch_installer.steps.step_90_configure_mirror_monitoring import reflector_conf

from .helpers import categories


@pytest.fixture
def props(tmp_path):
    return {
        "debug": True,
        "target_root": str(tmp_path / "mnt"),
        "disk": "/dev/vda",
        "boot_partition": "/dev/vda1",
        "root_partition": "/dev/vda2",
        "username": "tux",
        "password": "hunter2",
        "hostname": "archbox",
        "timezone": "Europe/Berlin",
        "locale_lang": "de_DE",
        "locale_gen_list": ["de_DE.UTF-8 UTF-8"],
        "kernel": "linux-zen",
        "microcode": "intel-ucode",
        "mirror_region": "Germany",
        "encryption_enabled": True,
        "core_tweaks_enabled": True,
        "multilib_enabled": True,
        "aur_helper": "paru",
        "bootsplash_enabled": True,
        "desktop_enabled": True,
        "desktop_extras_enabled": True,
        "graphics_driver": "nvidia",
        "vm_support_enabled": True,
    }


class TestDryRun:
    def test_every_step_succeeds_without_touching_the_system(self, props, log_path, tmp_path):
        skipped = []
        for step in build_steps():
            if not is_enabled(step, props):
                skipped.append(step.step_id)
                continue
            assert step.run(props) == 0, step.step_id

        # nothing was written, so there is no first-login script to install
        assert skipped == ["75_finalize_installation"]

        assert not (tmp_path / "mnt").exists()
        messages = [msg for _, msg in categories(log_path)]
        assert any(msg.startswith("CMD pacstrap -K ") for msg in messages)
        assert any(msg.startswith("Would write ") and msg.endswith("arch.conf") for msg in messages)
        assert not any("hunter2" in msg for msg in messages)

    def test_step_ids_are_ordered_and_unique(self):
        ids = [step.step_id for step in build_steps()]
        assert ids == sorted(ids)
        assert len(set(ids)) == len(ids)

    def test_disabled_toggles(self, props):
        props.update(multilib_enabled=False, aur_helper="none", graphics_driver="none", desktop_enabled=False)
        enabled = {step.step_id for step in build_steps() if is_enabled(step, props)}
        assert "40_enable_multilib" not in enabled
        assert "50_install_aur_helper" not in enabled
        assert "60_install_desktop" not in enabled
        assert "65_install_graphics_driver" not in enabled
        assert "80_cleanup_installation" in enabled

    def test_unknown_graphics_driver(self, props):
        props["graphics_driver"] = "voodoo"
        with pytest.raises(ValueError):
            InstallGraphicsDriverStep().run(props)


class TestRenderers:
    def test_encrypted_kernel_args(self):
        args = kernel_args({"encryption_enabled": True}, root_id="abcd")
        assert args[:2] == ["rd.luks.name=abcd=cryptroot", "root=/dev/mapper/cryptroot"]
        assert "zswap.enabled=0" in args
        assert "splash" not in args

    def test_plain_kernel_args_with_splash(self):
        args = kernel_args({"bootsplash_enabled": True}, root_id="1234")
        assert args[0] == "root=PARTUUID=1234"
        assert "splash" in args

    def test_hooks(self):
        assert "sd-encrypt" in mkinitcpio_hooks(True)
        assert "sd-encrypt" not in mkinitcpio_hooks(False)

    @pytest.mark.parametrize(
        "current, expected",
        [
            ("", "[Daemon]\nShowDelay=3\n"),
            ("[Daemon]\nTheme=spinner\n", "[Daemon]\nShowDelay=3\nTheme=spinner\n"),
            ("[Daemon]\nShowDelay=0\n", "[Daemon]\nShowDelay=3\n"),
            ("[Other]\nA=1", "[Other]\nA=1\n\n[Daemon]\nShowDelay=3\n"),
        ],
    )
    def test_show_delay(self, current, expected):
        assert with_show_delay(current) == expected

    def test_reflector_conf_quotes_spaced_country(self):
        assert '--country "United States"' in reflector_conf("United States")
        assert "--country France" in reflector_conf("France")
        assert "--country" not in reflector_conf("Worldwide")

    def test_multilib_packages_only_with_multilib(self):
        assert "lib32-mesa" in driver_packages("mesa", {"multilib_enabled": True, "kernel": "linux"})
        assert "lib32-mesa" not in driver_packages("mesa", {"kernel": "linux"})
        assert driver_packages("nvidia", {"kernel": "linux-lts"})[0] == "linux-lts-headers"

    def test_desktop_without_extras(self):
        assert desktop_packages({"desktop_extras_enabled": False}) == ["gnome", "git"]


@pytest.fixture
def quiet_chroot(monkeypatch):
    """Record chroot commands instead of running them; file writes stay real."""

    calls = []
    for module in (step_60_install_desktop, step_75_finalize_installation):
        monkeypatch.setattr(module, "chroot_cmd", lambda root, argv, **kw: calls.append(list(argv)))
        monkeypatch.setattr(module, "chown_home", lambda root, user, **kw: calls.append(["chown", user]))
    monkeypatch.setattr(step_60_install_desktop, "runuser_cmd", lambda *a, **kw: None)
    monkeypatch.setattr(step_60_install_desktop, "enable_services", lambda *a, **kw: None)
    monkeypatch.setattr(step_60_install_desktop, "pacman_install", lambda *a, **kw: True)
    monkeypatch.setattr(step_60_install_desktop, "pacman_remove", lambda *a, **kw: None)
    return calls


class TestFirstLoginScript:
    def test_desktop_extras_leave_script_for_finalize(self, props, quiet_chroot, tmp_path):
        props["debug"] = False
        assert InstallDesktopStep().run(props) == 0

        pending = tmp_path / "mnt" / "home" / "tux" / "initialize.sh"
        assert pending.read_text(encoding="utf-8") == INIT_SCRIPT
        assert "gsettings set org.gnome.desktop.interface gtk-theme 'adw-gtk3'" in INIT_SCRIPT
        assert FinalizeInstallationStep().enabled(props)

    def test_desktop_without_extras_writes_no_script(self, props, quiet_chroot, tmp_path):
        props.update(debug=False, desktop_extras_enabled=False)
        assert InstallDesktopStep().run(props) == 0
        assert not (tmp_path / "mnt" / "home" / "tux" / "initialize.sh").exists()
        assert not FinalizeInstallationStep().enabled(props)

    def test_finalize_installs_script_and_autostart(self, props, quiet_chroot, tmp_path):
        props["debug"] = False
        home = tmp_path / "mnt" / "home" / "tux"
        home.mkdir(parents=True)
        (home / "initialize.sh").write_text("gsettings set org.gnome.mutter center-new-windows true\n", encoding="utf-8")

        assert FinalizeInstallationStep().run(props) == 0

        assert not (home / "initialize.sh").exists()
        lines = (home / ".arch-linux" / "system" / "initialize.sh").read_text(encoding="utf-8").splitlines()
        assert lines[0] == "#!/usr/bin/env bash"
        assert lines[1].startswith("ARCH_LINUX_VERSION=")
        assert lines[2] == "gsettings set org.gnome.mutter center-new-windows true"
        assert "rm -f /home/tux/.config/autostart/initialize.desktop" in lines
        assert lines[-1].endswith('| Initialized"')

        entry = (home / ".config" / "autostart" / "initialize.desktop").read_text(encoding="utf-8")
        assert "Exec=bash -c '/home/tux/.arch-linux/system/initialize.sh > /home/tux/.arch-linux/system/initialize.log'" in entry
        assert ["chmod", "+x", "/home/tux/.arch-linux/system/initialize.sh"] in quiet_chroot
        assert quiet_chroot[-1] == ["chown", "tux"]

    def test_finalize_dry_run_leaves_script_in_place(self, props, quiet_chroot, tmp_path):
        pending = tmp_path / "mnt" / "home" / "tux" / "initialize.sh"
        pending.parent.mkdir(parents=True)
        pending.write_text("echo hi\n", encoding="utf-8")

        assert FinalizeInstallationStep().enabled(props)
        assert FinalizeInstallationStep().run(props) == 0
        assert pending.read_text(encoding="utf-8") == "echo hi\n"
        assert not (pending.parent / ".config").exists()
        assert quiet_chroot == []

    def test_empty_script_is_not_installed(self, props, tmp_path):
        pending = tmp_path / "mnt" / "home" / "tux" / "initialize.sh"
        pending.parent.mkdir(parents=True)
        pending.touch()
        assert not FinalizeInstallationStep().enabled(props)
