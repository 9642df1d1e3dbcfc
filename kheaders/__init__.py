"""Kernel header discovery and DKMS symlink verification."""

from .config import HeadersSettings, load_settings
from .discovery import DiscoveryEngine, discover_kernel_headers
from .errors import (
    HeadersError,
    MalformedVersion,
    MetadataMissing,
    MetadataUnreadable,
    ModuleDirectoryMissing,
    NoVerifiedHeaders,
    PostLinkVerificationFailed,
    StaleSymlinkDetected,
    SymlinkCreationFailed,
    SymlinkError,
)
from .locator import CandidateLocator
from .models import DkmsCompatibility, HeaderDirectoryCandidate, KernelInstallationStatus, ReleaseMetadata, SymlinkTarget
from .symlinks import SymlinkManager, create_kernel_symlinks_fallback
from .template import TemplateEmitter
from .verification import check_dkms_compatibility, verify_kernel_installation
from .version import KernelVersion, base_of, parse

__all__ = [
    "CandidateLocator",
    "DiscoveryEngine",
    "DkmsCompatibility",
    "HeaderDirectoryCandidate",
    "HeadersError",
    "HeadersSettings",
    "KernelInstallationStatus",
    "KernelVersion",
    "MalformedVersion",
    "MetadataMissing",
    "MetadataUnreadable",
    "ModuleDirectoryMissing",
    "NoVerifiedHeaders",
    "PostLinkVerificationFailed",
    "ReleaseMetadata",
    "StaleSymlinkDetected",
    "SymlinkCreationFailed",
    "SymlinkError",
    "SymlinkManager",
    "SymlinkTarget",
    "TemplateEmitter",
    "base_of",
    "check_dkms_compatibility",
    "create_kernel_symlinks_fallback",
    "discover_kernel_headers",
    "load_settings",
    "parse",
    "verify_kernel_installation",
]
