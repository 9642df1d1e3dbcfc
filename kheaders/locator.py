"""
Candidate locator.

Strategies, in strict priority order. The first candidate accepted by
``metadata.matches`` wins; candidates are never scored against each other.

1. exact              {src_root}/linux-{full}
2. base               {src_root}/linux-{base}  (only when base != full)
3. scan               every {src_root}/linux-* directory, byte-sorted by
                      name, branded names moved to the end
4. branding-fallback  the branded subset again, same acceptance rule

The generated shell hook (templates/repair_symlinks.sh.j2) walks the same
order; keep the two in step.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from . import metadata
from .config import HeadersSettings
from .models import LINUX_PREFIX, HeaderDirectoryCandidate
from .version import KernelVersion

logger = logging.getLogger(__name__)

STRATEGIES = ("exact", "base", "scan", "branding-fallback")


class CandidateLocator:
    """Enumerate and accept header tree candidates for one target release."""

    def __init__(self, settings: HeadersSettings | None = None):
        self.settings = settings or HeadersSettings()

    @property
    def src_root(self) -> Path:
        return self.settings.src_root

    def _candidate(self, path: Path, strategy: str) -> HeaderDirectoryCandidate:
        return HeaderDirectoryCandidate.from_path(path, self.settings.branding_markers, strategy)

    def scan_order(self) -> list[HeaderDirectoryCandidate]:
        """All linux-* directories, byte-sorted, branded ones last."""
        try:
            entries = [p for p in self.src_root.iterdir() if p.name.startswith(LINUX_PREFIX) and p.is_dir()]
        except OSError as e:
            logger.warning(f"Cannot list {self.src_root}: {e}")
            return []
        entries.sort(key=lambda p: p.name.encode("utf-8", "surrogateescape"))
        candidates = [self._candidate(p, "scan") for p in entries]
        # sorted() is stable: relative order inside each group is preserved.
        return sorted(candidates, key=lambda c: c.is_branded)

    def candidates(self, target: KernelVersion) -> Iterator[HeaderDirectoryCandidate]:
        """Yield candidates in priority order; may yield the same path twice."""
        yield self._candidate(self.src_root / f"{LINUX_PREFIX}{target.full}", "exact")
        if target.base != target.full:
            yield self._candidate(self.src_root / f"{LINUX_PREFIX}{target.base}", "base")
        scanned = self.scan_order()
        yield from scanned
        for candidate in scanned:
            if candidate.is_branded:
                yield candidate.model_copy(update={"strategy": "branding-fallback"})

    def accepts(self, candidate: HeaderDirectoryCandidate, target: KernelVersion) -> bool:
        if not candidate.path.is_dir():
            return False
        return metadata.matches(candidate.path, target, self.settings.metadata_file)

    def locate(self, target: KernelVersion) -> HeaderDirectoryCandidate | None:
        """Return the first accepted candidate, or None when every strategy is exhausted."""
        announced: set[str] = set()
        for candidate in self.candidates(target):
            if candidate.strategy not in announced:
                announced.add(candidate.strategy)
                self._announce(candidate.strategy, target)
            if self.accepts(candidate, target):
                logger.info(f"[STRATEGY-{STRATEGIES.index(candidate.strategy) + 1}] accepted {candidate.path} for {target.full}")
                return candidate
        if "branding-fallback" not in announced:
            self._announce("branding-fallback", target)
        logger.warning(f"[BRANDING-FALLBACK] no branded tree matches {target.full} either")
        return None

    def _announce(self, strategy: str, target: KernelVersion) -> None:
        if strategy == "exact":
            logger.debug(f"[STRATEGY-1] exact match: {self.src_root}/{LINUX_PREFIX}{target.full}")
        elif strategy == "base":
            logger.debug(f"[STRATEGY-2] base version: {self.src_root}/{LINUX_PREFIX}{target.base}")
        elif strategy == "scan":
            logger.debug(f"[STRATEGY-3] strict scan of {self.src_root}/{LINUX_PREFIX}*")
        else:
            logger.info(f"[STRATEGY-4] [BRANDING-FALLBACK] strategies 1-3 found nothing for {target.full}, re-checking branded trees")


__all__ = ["STRATEGIES", "CandidateLocator"]
