"""
Symlink manager.

Points ``<module_dir>/build`` and ``<module_dir>/source`` at the header tree
the discovery engine verified, and at nothing else. Every write is a single
rename of a freshly created temporary link over the old one, so a concurrent
reader sees either the old link or the new one, never a gap.
"""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path

from . import metadata
from .config import HeadersSettings, coerce_settings
from .discovery import DiscoveryEngine
from .errors import (
    ModuleDirectoryMissing,
    NoVerifiedHeaders,
    PostLinkVerificationFailed,
    StaleSymlinkDetected,
    SymlinkCreationFailed,
)
from .models import SymlinkTarget
from .version import KernelVersion, parse

logger = logging.getLogger(__name__)


class SymlinkManager:
    """Create or repair the DKMS build/source links for one kernel release."""

    def __init__(self, settings: HeadersSettings | None = None, engine: DiscoveryEngine | None = None):
        self.settings = settings or HeadersSettings()
        self.engine = engine or DiscoveryEngine(self.settings)

    def ensure_symlinks(self, target: KernelVersion | str, module_dir: Path | str | None = None) -> list[SymlinkTarget]:
        """Make every configured link resolve to the verified header tree.

        Returns the link records, all verified. A second call against an
        unchanged filesystem writes nothing.

        :raises NoVerifiedHeaders: discovery found no tree for ``target``.
        :raises ModuleDirectoryMissing: ``module_dir`` does not exist.
        :raises SymlinkCreationFailed: the atomic replace failed; that link is untouched
            and links already rewritten by this call are put back.
        :raises PostLinkVerificationFailed: a new link did not verify; every link this
            call rewrote is put back.
        """
        target = parse(target)
        module_dir = Path(module_dir) if module_dir is not None else self.settings.module_dir(target.full)

        verified = self.engine.discover(target)
        if verified is None:
            raise NoVerifiedHeaders(target.full, log=True)
        if not module_dir.is_dir():
            raise ModuleDirectoryMissing(f"Module directory {module_dir} does not exist, cannot link headers for {target.full}", log=True)

        entries = []
        written: list[tuple[Path, str | None]] = []
        try:
            for name in self.settings.link_names:
                entry = SymlinkTarget(link_path=module_dir / name, resolved_target=verified, verified=True)
                previous = _readlink(entry.link_path)
                if self._ensure_link(entry, target, previous):
                    written.append((entry.link_path, previous))
                entries.append(entry)
        except (SymlinkCreationFailed, PostLinkVerificationFailed):
            self._rollback(written)
            raise
        logger.info(f"Links for {target.full} verified against {verified}")
        return entries

    def _current_link_ok(self, entry: SymlinkTarget, target: KernelVersion) -> bool:
        """True if the existing link can stay, False if there is none.

        :raises StaleSymlinkDetected: the link resolves to a tree that does not verify.
        """
        link = entry.link_path
        if not os.path.lexists(link):
            return False
        current = Path(os.path.realpath(link))
        if current == Path(os.path.realpath(entry.resolved_target)):
            logger.debug(f"{link} already points at {entry.resolved_target}")
            return True
        if current.is_dir() and metadata.matches(current, target, self.settings.metadata_file):
            logger.info(f"{link} points at {current}, which also verifies as {target.full}; leaving it")
            entry.resolved_target = current
            return True
        raise StaleSymlinkDetected(link, current)

    def _ensure_link(self, entry: SymlinkTarget, target: KernelVersion, previous: str | None = None) -> bool:
        """Return True if the link was (re)written.

        ``previous`` is what the link pointed at before this call (None: no link),
        restored if the new link fails verification.
        """
        link = entry.link_path
        try:
            if self._current_link_ok(entry, target):
                return False
        except StaleSymlinkDetected as stale:
            logger.warning(stale.message)

        self._atomic_symlink(entry)
        logger.info(f"Linked {link} -> {entry.resolved_target}")

        # The tree may have changed between discovery and the rename.
        if not metadata.matches(link, target, self.settings.metadata_file):
            self._restore(link, previous)
            raise PostLinkVerificationFailed(
                f"{link} -> {entry.resolved_target} no longer verifies as {target.full}; previous state restored",
                log=True,
            )
        return True

    def _atomic_symlink(self, entry: SymlinkTarget) -> None:
        if not entry.verified:
            raise SymlinkCreationFailed(f"Refusing to write unverified link {entry.link_path} -> {entry.resolved_target}")
        self._replace_link(entry.link_path, entry.resolved_target)

    def _replace_link(self, link: Path, destination: Path | str) -> None:
        tmp = link.with_name(f".{link.name}.tmp-{uuid.uuid4().hex[:12]}")
        try:
            os.symlink(destination, tmp)
        except OSError as e:
            raise SymlinkCreationFailed(f"Failed to create temporary link {tmp}: {e}", log=True) from e
        try:
            os.replace(tmp, link)
        except OSError as e:
            try:
                os.unlink(tmp)
            except OSError as cleanup:
                logger.warning(f"Could not remove temporary link {tmp}: {cleanup}")
            raise SymlinkCreationFailed(f"Failed to replace {link}: {e}", log=True) from e

    def _restore(self, link: Path, previous: str | None) -> None:
        try:
            if previous is None:
                os.unlink(link)
            else:
                self._replace_link(link, previous)
        except (OSError, SymlinkCreationFailed) as e:
            raise PostLinkVerificationFailed(f"{link} failed verification and could not be restored: {e}", log=True) from e

    def _rollback(self, written: list[tuple[Path, str | None]]) -> None:
        """Put back links already rewritten in this call, newest first."""
        for link, previous in reversed(written):
            try:
                self._restore(link, previous)
            except PostLinkVerificationFailed as e:
                logger.warning(f"Rollback of {link} incomplete: {e.message}")
                continue
            logger.info(f"Restored {link} after a failed update")


def _readlink(link: Path) -> str | None:
    return os.readlink(link) if link.is_symlink() else None


def create_kernel_symlinks_fallback(target_version: KernelVersion | str, module_dir: Path | str | None = None, settings=None) -> list[SymlinkTarget]:
    """Orchestrator entry point: verify headers for ``target_version`` and wire build/source."""
    return SymlinkManager(coerce_settings(settings)).ensure_symlinks(target_version, module_dir)


__all__ = ["SymlinkManager", "create_kernel_symlinks_fallback"]
