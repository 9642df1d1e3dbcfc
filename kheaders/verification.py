"""Post-install check of everything DKMS needs for one kernel release."""

from __future__ import annotations

import logging
from pathlib import Path

from . import metadata
from .config import HeadersSettings, coerce_settings
from .discovery import DiscoveryEngine
from .models import DkmsCompatibility, KernelInstallationStatus
from .version import KernelVersion, parse

logger = logging.getLogger(__name__)


def verify_kernel_module_directory(module_dir: Path) -> bool:
    """A module directory counts as installed once depmod has written modules.dep."""
    if not module_dir.is_dir():
        logger.info(f"Module directory {module_dir} not found")
        return False
    if not (module_dir / "modules.dep").is_file():
        logger.warning(f"Module directory {module_dir} exists but modules.dep is missing")
        return False
    return True


def verify_symlink(link: Path, target: KernelVersion, metadata_file: str = metadata.DEFAULT_METADATA_FILE) -> bool:
    """True iff ``link`` is a symlink whose tree's release metadata equals the target."""
    if not link.is_symlink():
        logger.info(f"{link} is not a symlink")
        return False
    return metadata.matches(link, target, metadata_file)


def verify_kernel_installation(target_version: KernelVersion | str, settings: HeadersSettings | None = None, module_dir: Path | None = None) -> KernelInstallationStatus:
    settings = coerce_settings(settings)
    target = parse(target_version)
    module_dir = module_dir or settings.module_dir(target.full)

    headers = DiscoveryEngine(settings).discover(target)
    links = {name: verify_symlink(module_dir / name, target, settings.metadata_file) for name in settings.link_names}
    status = KernelInstallationStatus(
        kernel_version=target.full,
        module_dir_exists=verify_kernel_module_directory(module_dir),
        build_symlink_valid=links.get("build", False),
        source_symlink_valid=links.get("source", False),
        headers_installed=headers is not None,
        headers_path=headers,
        links=links,
    )
    logger.info(f"Installation status for {target.full}: {status.summary()}")
    return status


def check_dkms_compatibility(target_version: KernelVersion | str, nvidia_version: str | None = None) -> DkmsCompatibility:
    """Flag release-candidate kernels and, given a driver version, known NVIDIA DKMS breakage."""
    target = parse(target_version)
    compat = DkmsCompatibility(kernel_version=target)
    logger.info(f"[DKMS-COMPAT] kernel {target.full}: rc={target.is_rc} rc_version={target.rc_number}")
    if nvidia_version is not None and not compat.check_nvidia_compatibility(nvidia_version):
        logger.warning(f"[DKMS-COMPAT] {compat.reason}")
    return compat


__all__ = [
    "check_dkms_compatibility",
    "verify_kernel_installation",
    "verify_kernel_module_directory",
    "verify_symlink",
]
