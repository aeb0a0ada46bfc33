from __future__ import annotations

import argparse
import logging
import shutil
import sys
import time
from typing import Any, Dict, Optional

from . import __version__
from .console import InstallerConsole
from .engine import ErrorTrap, ProgressMonitor, RunState, StepOutcome, StepSupervisor, Workspace
from .engine.monitor import DEFAULT_POLL_INTERVAL
from .lib.command import run_cmd
from .lib.env import PATHS
from .lib.files import target_path
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import run_pipeline
from .properties import (
    DEFAULT_CONFIG_PATH,
    apply_env,
    ensure_defaults,
    forget_secrets,
    load_properties,
    save_properties,
    summary,
)
from .recovery import recover
from .steps import (
    CleanupInstallationStep,
    ConfigureMirrorMonitoringStep,
    EnableMultilibStep,
    FinalizeInstallationStep,
    InitInstallationStep,
    InstallAurHelperStep,
    InstallBootsplashStep,
    InstallDesktopStep,
    InstallGraphicsDriverStep,
    InstallVmSupportStep,
    PacstrapCoreStep,
    PrepareDiskStep,
)

logger = logging.getLogger(__name__)

TITLE = "Arch Linux"
COUNTDOWN_SECONDS = 5


def build_steps():
    return [
        InitInstallationStep(),
        PrepareDiskStep(),
        PacstrapCoreStep(),
        EnableMultilibStep(),
        InstallAurHelperStep(),
        InstallBootsplashStep(),
        InstallDesktopStep(),
        InstallGraphicsDriverStep(),
        InstallVmSupportStep(),
        FinalizeInstallationStep(),
        CleanupInstallationStep(),
        ConfigureMirrorMonitoringStep(),
    ]


def countdown(ui: InstallerConsole, seconds: int = COUNTDOWN_SECONDS) -> None:
    """Last chance to back out; Ctrl + c raises KeyboardInterrupt."""

    with ui.status("Start Installation") as status:
        for remaining in range(seconds, 0, -1):
            status.update(f"Start Installation in {remaining}s (Cancel with Ctrl + c)")
            time.sleep(1)


def post_run(ui: InstallerConsole, props: Dict[str, Any], *, started: float, log_path: str) -> None:
    minutes, seconds = divmod(int(time.monotonic() - started), 60)
    ui.title("Installation finished")
    ui.success(f"Arch Linux installed in {minutes} minutes and {seconds} seconds")

    if props.get("debug"):
        return

    root = props.get("target_root") or PATHS.target_root
    username = props.get("username")
    if username:
        home = target_path(root, f"/home/{username}")
        try:
            save_properties(str(home / "installer.yaml"), props, include_secrets=False)
            shutil.copy2(log_path, home / "installer.log")
        except OSError as e:
            ui.warn(f"Could not copy installer files to {home}: {e}")
        else:
            run_cmd(["arch-chroot", root, "chown", "-R", f"{username}:{username}", f"/home/{username}"], check=False)

    if props.get("reboot"):
        ui.info("Rebooting...")
        run_cmd(["umount", "-R", root], check=False)
        run_cmd(["reboot"], check=False)
    elif props.get("unmount"):
        ui.info(f"Unmounting {root}")
        run_cmd(["umount", "-R", root], check=False)


def run(
    *,
    config_path: str = DEFAULT_CONFIG_PATH,
    log_path: str = DEFAULT_LOG_PATH,
    debug: bool = False,
    force: bool = False,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    scratch_dir: str = PATHS.scratch_base,
    console: Optional[InstallerConsole] = None,
    interactive: Optional[bool] = None,
) -> int:
    """Run the installer and return the process exit code (0, 1 or 130)."""

    started = time.monotonic()
    configure_logging(log_path=log_path)
    logger.info("Arch Linux Installer %s", __version__)

    ui = console or InstallerConsole()
    if interactive is None:
        interactive = sys.stdin.isatty()

    props: Dict[str, Any] = {}
    workspace = Workspace.create(scratch_dir)
    supervisor = StepSupervisor(
        console=ui,
        workspace=workspace,
        monitor=ProgressMonitor(ui, poll_interval=poll_interval),
    )
    trap = ErrorTrap(
        console=ui,
        workspace=workspace,
        interactive=interactive,
        forget_secrets=lambda: forget_secrets(props),
    )

    with trap:
        props.update(apply_env(load_properties(config_path)))
        if debug:
            props["debug"] = True
        if force:
            props["force"] = True
        ensure_defaults(props)

        ui.header(TITLE, version=__version__, debug=props["debug"], force=props["force"])
        ui.title("Properties")
        for key, value in summary(props).items():
            ui.prop(key, value)

        if not props["force"] and not ui.confirm("Start Arch Linux Installation?"):
            trap.resolve(StepOutcome.CANCELLED)
        else:
            if not props["force"]:
                countdown(ui)
            ui.title("Installation")
            result = run_pipeline(props=props, steps=build_steps(), supervisor=supervisor)
            logger.info("Ran steps: %s", ", ".join(result.ran_steps) or "-")
            if result.skipped_steps:
                logger.info("Skipped steps: %s", ", ".join(result.skipped_steps))
            trap.resolve(result.outcome)

    if trap.state is RunState.SUCCESS:
        post_run(ui, props, started=started, log_path=trap.log_path)

    return trap.exit_code


def run_recovery(
    *,
    disk: Optional[str] = None,
    log_path: str = DEFAULT_LOG_PATH,
    debug: bool = False,
    scratch_dir: str = PATHS.scratch_base,
    console: Optional[InstallerConsole] = None,
    interactive: Optional[bool] = None,
) -> int:
    """Chroot into an installed system; same exit codes as `run`."""

    configure_logging(log_path=log_path)
    logger.info("Arch Linux Recovery %s", __version__)

    ui = console or InstallerConsole()
    if interactive is None:
        interactive = sys.stdin.isatty()

    trap = ErrorTrap(console=ui, workspace=Workspace.create(scratch_dir), interactive=interactive)
    with trap:
        ui.header(f"{TITLE} Recovery", version=__version__, debug=debug)
        trap.resolve(recover(ui, disk=disk, dry_run=debug))

    return trap.exit_code


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="arch-installer")
    p.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to installer properties (json|yaml)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to installer log")
    p.add_argument("--debug", action="store_true", help="Dry run: log commands instead of executing them")
    p.add_argument("--force", action="store_true", help="Skip confirmation and countdown")
    p.add_argument("--recovery", action="store_true", help="Chroot into an installed system instead of installing")
    p.add_argument("--disk", help="Disk holding the installed system (recovery only)")
    p.add_argument(
        "--poll-interval",
        type=float,
        default=DEFAULT_POLL_INTERVAL,
        help="Seconds between task liveness checks",
    )

    args = p.parse_args(argv)

    if args.recovery:
        return run_recovery(disk=args.disk, log_path=args.log, debug=args.debug)

    return run(
        config_path=args.config,
        log_path=args.log,
        debug=args.debug,
        force=args.force,
        poll_interval=args.poll_interval,
    )
