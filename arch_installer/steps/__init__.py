from .step_10_init_installation import InitInstallationStep
from .step_20_prepare_disk import PrepareDiskStep
from .step_30_pacstrap_core import PacstrapCoreStep
from .step_40_enable_multilib import EnableMultilibStep
from .step_50_install_aur_helper import InstallAurHelperStep
from .step_55_install_bootsplash import InstallBootsplashStep
from .step_60_install_desktop import InstallDesktopStep
from .step_65_install_graphics_driver import InstallGraphicsDriverStep
from .step_70_install_vm_support import InstallVmSupportStep
from .step_75_finalize_installation import FinalizeInstallationStep
from .step_80_cleanup_installation import CleanupInstallationStep
from .step_90_configure_mirror_monitoring import ConfigureMirrorMonitoringStep

__all__ = [
    "InitInstallationStep",
    "PrepareDiskStep",
    "PacstrapCoreStep",
    "EnableMultilibStep",
    "InstallAurHelperStep",
    "InstallBootsplashStep",
    "InstallDesktopStep",
    "InstallGraphicsDriverStep",
    "InstallVmSupportStep",
    "FinalizeInstallationStep",
    "CleanupInstallationStep",
    "ConfigureMirrorMonitoringStep",
]
