from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..lib.chroot import chown_home, chroot_cmd, enable_services, runuser_cmd
from ..lib.env import INIT_FILENAME, PATHS
from ..lib.files import append_file, write_file
from ..lib.pkg import pacman_install, pacman_remove
from ..properties import require

logger = logging.getLogger(__name__)

EXTRA_PACKAGES = [
    # GNOME extras
    "gnome-browser-connector", "gnome-themes-extra", "tuned-ppd", "rygel", "cups", "gnome-epub-thumbnailer",
    # Portals
    "xdg-utils", "xdg-desktop-portal", "xdg-desktop-portal-gtk", "xdg-desktop-portal-gnome", "flatpak-xdg-utils",
    # Audio
    "pipewire", "pipewire-alsa", "pipewire-pulse", "pipewire-jack", "wireplumber",
    # Networking
    "samba", "rsync", "gvfs", "gvfs-mtp", "gvfs-smb", "gvfs-nfs", "gvfs-wsdd", "modemmanager",
    "networkmanager-openvpn", "networkmanager-openconnect",
    # Utils
    "base-devel", "archlinux-contrib", "pacutils", "fwupd", "bash-completion", "nfs-utils", "dosfstools",
    "ntfs-3g", "exfat-utils", "p7zip", "zip", "unzip", "wget", "curl", "jq", "fzf", "ca-certificates",
    # Codecs
    "ffmpeg", "ffmpegthumbnailer", "gstreamer", "gst-libav", "gst-plugin-pipewire", "gst-plugins-good",
    "gst-plugins-bad", "gst-plugins-ugly", "libdvdcss", "libheif", "webp-pixbuf-loader",
    # Optimization
    "gamemode", "sdl_image",
    # Fonts
    "inter-font", "ttf-firacode-nerd", "noto-fonts", "noto-fonts-emoji", "ttf-liberation", "ttf-dejavu",
    # Theming
    "adw-gtk-theme", "tela-circle-icon-theme-standard",
]

EXTRA_MULTILIB_PACKAGES = [
    "lib32-pipewire", "lib32-pipewire-jack", "lib32-gstreamer", "lib32-gst-plugins-good",
    "lib32-gamemode", "lib32-sdl_image",
]

SLIM_REMOVALS = [
    "gnome-calendar", "gnome-maps", "gnome-contacts", "gnome-font-viewer", "gnome-characters",
    "gnome-clocks", "gnome-connections", "gnome-music", "gnome-weather", "gnome-calculator",
    "gnome-logs", "gnome-text-editor", "gnome-disk-utility", "simple-scan", "baobab", "totem",
    "snapshot", "epiphany", "loupe",
]

USER_GROUPS = "adm,audio,video,optical,input,tty,plugdev"

DESKTOP_SERVICES = ["gdm.service", "bluetooth.service", "avahi-daemon", "gpm.service"]
EXTRA_SERVICES = ["tuned", "tuned-ppd", "cups.socket", "smb.service", "wsdd.service"]

HIDDEN_ENTRIES = ["bssh", "bvnc", "avahi-discover", "qv4l2", "qvidcap", "lstopo"]

SMB_CONF = """[global]
   workgroup = WORKGROUP
   server string = Samba Server
   server role = standalone server
   security = user
   map to guest = Bad User
   log file = /var/log/samba/%m.log
   max log size = 50
   client min protocol = SMB2
   server min protocol = SMB2
"""

ENVIRONMENT_CONF = """# SSH AGENT
SSH_AUTH_SOCK=$XDG_RUNTIME_DIR/gcr/ssh

# PATH
PATH="${PATH}:${HOME}/.local/bin"

# XDG
XDG_CONFIG_HOME="${HOME}/.config"
XDG_DATA_HOME="${HOME}/.local/share"
XDG_STATE_HOME="${HOME}/.local/state"
XDG_CACHE_HOME="${HOME}/.cache"
"""


INIT_SCRIPT = """# Theming
gsettings set org.gnome.desktop.interface gtk-theme 'adw-gtk3'
gsettings set org.gnome.desktop.interface icon-theme 'Tela-circle'
gsettings set org.gnome.desktop.interface accent-color 'slate'
# Fonts
gsettings set org.gnome.desktop.interface font-hinting 'slight'
gsettings set org.gnome.desktop.interface font-antialiasing 'rgba'
gsettings set org.gnome.desktop.interface font-name 'Inter 10'
gsettings set org.gnome.desktop.interface document-font-name 'Inter 10'
gsettings set org.gnome.desktop.wm.preferences titlebar-font 'Inter Bold 10'
gsettings set org.gnome.desktop.interface monospace-font-name 'FiraCode Nerd Font 10'
# Input sources
gsettings set org.gnome.desktop.input-sources show-all-sources true
# Mutter
gsettings set org.gnome.mutter center-new-windows true
# File chooser
gsettings set org.gtk.Settings.FileChooser sort-directories-first true
gsettings set org.gtk.gtk4.Settings.FileChooser sort-directories-first true
# Keybindings
gsettings set org.gnome.desktop.wm.keybindings close "['<Super>q']"
gsettings set org.gnome.desktop.wm.keybindings minimize "['<Super>h']"
gsettings set org.gnome.desktop.wm.keybindings show-desktop "['<Super>d']"
gsettings set org.gnome.desktop.wm.keybindings toggle-fullscreen "['<Super>F11']"
# Favorite apps
gsettings set org.gnome.shell favorite-apps "['org.gnome.Console.desktop', 'org.gnome.Nautilus.desktop', 'org.gnome.Software.desktop', 'org.gnome.Settings.desktop']"
"""


def desktop_packages(props: Dict[str, Any]) -> List[str]:
    packages = ["gnome", "git"]
    if props.get("desktop_extras_enabled"):
        packages += EXTRA_PACKAGES
        if props.get("multilib_enabled"):
            packages += EXTRA_MULTILIB_PACKAGES
    return packages


def gdm_conf(username: str) -> str:
    return (
        "[daemon]\n"
        "WaylandEnable=True\n"
        "\n"
        "AutomaticLoginEnable=True\n"
        f"AutomaticLogin={username}\n"
        "\n"
        "[debug]\n"
        "Enable=False\n"
    )


def keyboard_conf(layout: str, model: str, variant: str) -> str:
    return (
        'Section "InputClass"\n'
        '    Identifier "system-keyboard"\n'
        '    MatchIsKeyboard "yes"\n'
        f'    Option "XkbLayout" "{layout}"\n'
        f'    Option "XkbModel" "{model}"\n'
        f'    Option "XkbVariant" "{variant}"\n'
        "EndSection\n"
    )


class InstallDesktopStep:
    step_id = "60_install_desktop"
    name = "GNOME Desktop"

    def enabled(self, props: Dict[str, Any]) -> bool:
        return bool(props.get("desktop_enabled"))

    def run(self, props: Dict[str, Any]) -> int:
        require(props, "username")
        dry_run = bool(props.get("debug", False))
        root = props.get("target_root") or PATHS.target_root
        username = props["username"]
        extras = bool(props.get("desktop_extras_enabled"))
        home = f"/home/{username}"

        # One transaction so pacman resolves conflicts between the lists
        if not pacman_install(root, desktop_packages(props), dry_run=dry_run):
            return 1

        if props.get("desktop_slim_enabled"):
            for package in SLIM_REMOVALS:
                pacman_remove(root, [package], check=False, dry_run=dry_run)

        chroot_cmd(root, ["groupadd", "-f", "plugdev"], dry_run=dry_run)
        chroot_cmd(root, ["usermod", "-aG", USER_GROUPS, username], dry_run=dry_run)
        if extras:
            chroot_cmd(root, ["gpasswd", "-a", username, "gamemode"], dry_run=dry_run)

        write_file(root, "/etc/gdm/custom.conf", gdm_conf(username), dry_run=dry_run)
        runuser_cmd(
            root,
            username,
            "git config --global credential.helper /usr/lib/git-core/git-credential-libsecret",
            dry_run=dry_run,
        )
        write_file(root, f"{home}/.gnupg/gpg-agent.conf", "pinentry-program /usr/bin/pinentry-gnome3\n", dry_run=dry_run)
        write_file(root, f"{home}/.config/environment.d/00-arch.conf", ENVIRONMENT_CONF, dry_run=dry_run)
        write_file(
            root,
            f"{home}/.config/environment.d/99-flatpak.conf",
            '# Workaround for Flatpak aliases\nPATH="${PATH}:/var/lib/flatpak/exports/bin"\n',
            dry_run=dry_run,
        )

        if extras:
            write_file(root, "/etc/samba/smb.conf", SMB_CONF, dry_run=dry_run)
            chroot_cmd(root, ["testparm", "-s", "/etc/samba/smb.conf"], dry_run=dry_run)

        write_file(
            root,
            "/etc/X11/xorg.conf.d/00-keyboard.conf",
            keyboard_conf(
                props.get("desktop_keyboard_layout") or "us",
                props.get("desktop_keyboard_model") or "pc105",
                props.get("desktop_keyboard_variant") or "",
            ),
            dry_run=dry_run,
        )

        enable_services(root, DESKTOP_SERVICES + (EXTRA_SERVICES if extras else []), dry_run=dry_run)

        for entry in HIDDEN_ENTRIES:
            write_file(
                root,
                f"{home}/.local/share/applications/{entry}.desktop",
                "[Desktop Entry]\nType=Application\nHidden=true\n",
                dry_run=dry_run,
            )

        if extras:
            # applied on first login, inside the user session
            append_file(root, f"{home}/{INIT_FILENAME}.sh", INIT_SCRIPT, dry_run=dry_run)

        chown_home(root, username, dry_run=dry_run)
        logger.info("Desktop installed (extras=%s)", extras)
        return 0
