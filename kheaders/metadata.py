"""
Release metadata validation.

``matches`` is the single acceptance rule for header trees: the tree's
release file, with trailing whitespace removed, must equal the target's
full release exactly. Nothing else (directory names, branding, base
version) can approve a candidate.

The module also reads the build workspace metadata file (MPL), which
records the release the orchestrator actually produced.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .errors import MetadataError, MetadataMissing, MetadataUnreadable
from .models import ReleaseMetadata
from .version import POSIX_WHITESPACE, KernelVersion

logger = logging.getLogger(__name__)

DEFAULT_METADATA_FILE = ".kernelrelease"


def read_release(directory: Path, metadata_file: str = DEFAULT_METADATA_FILE) -> ReleaseMetadata:
    """Read the release file of a header tree.

    :raises MetadataMissing: the file does not exist or is not a regular file.
    :raises MetadataUnreadable: the file exists but cannot be read or decoded.
    """
    path = Path(directory) / metadata_file
    try:
        if not path.is_file():
            raise MetadataMissing(f"No release metadata at {path}")
        content = path.read_text(encoding="utf-8")
    except MetadataMissing:
        raise
    except (OSError, UnicodeDecodeError) as e:
        raise MetadataUnreadable(f"Cannot read release metadata at {path}: {e}") from e
    return ReleaseMetadata(path=path, release=content.rstrip(POSIX_WHITESPACE))


def matches(directory: Path, expected: KernelVersion, metadata_file: str = DEFAULT_METADATA_FILE) -> bool:
    """True iff ``directory`` holds release metadata equal to ``expected.full``."""
    try:
        metadata = read_release(directory, metadata_file)
    except MetadataError as e:
        logger.debug(f"Rejecting {directory}: {e}")
        return False
    if metadata.release != expected.full:
        logger.debug(f"Rejecting {directory}: release {metadata.release!r} != {expected.full!r}")
        return False
    return True


def read_mpl_kernelrelease(workspace_root: Path, mpl_file: str = ".goatd_metadata", key: str = "GOATD_KERNELRELEASE") -> str | None:
    """Return the release recorded in the workspace MPL file, or None.

    The file is shell-assignment formatted; the first ``KEY=value`` line with
    a non-empty value wins, surrounding double quotes are dropped.
    """
    mpl_path = Path(workspace_root) / mpl_file
    if not mpl_path.is_file():
        logger.warning(f"MPL file not found at {mpl_path}")
        return None
    try:
        content = mpl_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Failed to read MPL file {mpl_path}: {e}")
        return None
    prefix = f"{key}="
    for line in content.splitlines():
        if line.startswith(prefix):
            value = line[len(prefix):].strip().strip('"')
            if value:
                logger.info(f"MPL {key}={value}")
                return value
    logger.warning(f"MPL file {mpl_path} has no {key}")
    return None


def verify_kernel_against_mpl(installed: KernelVersion, workspace_root: Path, mpl_file: str = ".goatd_metadata", key: str = "GOATD_KERNELRELEASE") -> bool:
    """True iff the installed release equals the one the workspace MPL records."""
    expected = read_mpl_kernelrelease(workspace_root, mpl_file, key)
    if expected is None:
        return False
    if installed.full != expected:
        logger.warning(f"MPL mismatch: installed {installed.full!r} != expected {expected!r}")
        return False
    return True


__all__ = [
    "DEFAULT_METADATA_FILE",
    "matches",
    "read_mpl_kernelrelease",
    "read_release",
    "verify_kernel_against_mpl",
]
