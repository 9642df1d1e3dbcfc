"""Pydantic models for header discovery and link management."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from .version import KernelVersion

LINUX_PREFIX = "linux-"


class HeaderDirectoryCandidate(BaseModel):
    """A directory the locator is about to check.

    ``claimed_version_from_name`` and ``is_branded`` only influence ordering
    and diagnostics; acceptance goes through the metadata validator.
    """

    model_config = ConfigDict(frozen=True)

    path: Path
    claimed_version_from_name: str | None = None
    is_branded: bool = False
    strategy: str = Field(default="scan", description="Locator strategy that produced this candidate")

    @classmethod
    def from_path(cls, path: Path, branding_markers: list[str] | tuple[str, ...] = (), strategy: str = "scan") -> HeaderDirectoryCandidate:
        name = path.name
        claimed = name[len(LINUX_PREFIX):] if name.startswith(LINUX_PREFIX) else None
        return cls(
            path=path,
            claimed_version_from_name=claimed or None,
            is_branded=any(marker in name for marker in branding_markers),
            strategy=strategy,
        )


class ReleaseMetadata(BaseModel):
    """Content of a header tree's release file, trailing whitespace removed."""

    model_config = ConfigDict(frozen=True)

    path: Path
    release: str


class SymlinkTarget(BaseModel):
    """A build/source link and the header tree it should point at."""

    link_path: Path
    resolved_target: Path
    verified: bool = False

    @property
    def name(self) -> str:
        return self.link_path.name


class KernelInstallationStatus(BaseModel):
    """Summary of what DKMS needs for one kernel release."""

    kernel_version: str
    module_dir_exists: bool = False
    build_symlink_valid: bool = False
    source_symlink_valid: bool = False
    headers_installed: bool = False
    headers_path: Path | None = None
    links: dict[str, bool] = Field(default_factory=dict, description="Configured link name -> verifies")

    @property
    def ready_for_dkms(self) -> bool:
        return (
            self.module_dir_exists
            and self.headers_installed
            and bool(self.links)
            and all(self.links.values())
        )

    def summary(self) -> dict:
        payload = self.model_dump(mode="json")
        payload["ready_for_dkms"] = self.ready_for_dkms
        return payload


# NVIDIA 590.x below 590.100 breaks on the memremap.h struct changes of 6.19-rc6+.
NVIDIA_MEMREMAP_KERNEL = "6.19"
NVIDIA_MEMREMAP_FIRST_RC = 6
NVIDIA_MEMREMAP_DRIVER = (590, 100)


def _driver_major_minor(version: str) -> tuple[int, int]:
    major, minor = (version.split(".") + ["0", "0"])[:2]
    return (int(major) if major.isdigit() else 0, int(minor) if minor.isdigit() else 0)


class DkmsCompatibility(BaseModel):
    """Release-candidate detection and known NVIDIA driver breakage for one kernel."""

    kernel_version: KernelVersion
    nvidia_driver_version: str | None = None
    nvidia_compatible: bool = True
    reason: str = ""

    @property
    def is_rc_kernel(self) -> bool:
        return self.kernel_version.is_rc

    @property
    def rc_version(self) -> int | None:
        return self.kernel_version.rc_number

    def check_nvidia_compatibility(self, nvidia_version: str) -> bool:
        """Record ``nvidia_version`` and return whether it is known to build on this kernel."""
        self.nvidia_driver_version = nvidia_version
        kernel = self.kernel_version
        if not self.is_rc_kernel:
            self.nvidia_compatible = True
            self.reason = f"Stable kernel - NVIDIA {nvidia_version} compatible"
            return True
        major, minor = _driver_major_minor(nvidia_version)
        rc = self.rc_version
        affected_kernel = (
            rc is not None
            and rc >= NVIDIA_MEMREMAP_FIRST_RC
            and (kernel.base == NVIDIA_MEMREMAP_KERNEL or kernel.base.startswith(NVIDIA_MEMREMAP_KERNEL + "."))
        )
        if affected_kernel and major == NVIDIA_MEMREMAP_DRIVER[0] and minor < NVIDIA_MEMREMAP_DRIVER[1]:
            self.nvidia_compatible = False
            self.reason = f"KNOWN ISSUE: NVIDIA {major}.{minor} has a memremap.h compatibility issue on kernel {kernel.base}-rc{rc}"
        else:
            self.nvidia_compatible = True
            self.reason = f"RC kernel {kernel.full} detected but no known compatibility issues with NVIDIA {nvidia_version}"
        return self.nvidia_compatible

    def summary(self) -> str:
        if not self.is_rc_kernel:
            return f"Stable kernel {self.kernel_version.full} - DKMS ready"
        rc_info = f" (rc{self.rc_version})" if self.rc_version is not None else ""
        compat = "Compatible" if self.nvidia_compatible else "Incompatible"
        text = f"RC kernel {self.kernel_version.full}{rc_info} - {compat}"
        return f"{text}: {self.reason}" if self.reason else text


__all__ = [
    "DkmsCompatibility",
    "HeaderDirectoryCandidate",
    "KernelInstallationStatus",
    "KernelVersion",
    "ReleaseMetadata",
    "SymlinkTarget",
]
