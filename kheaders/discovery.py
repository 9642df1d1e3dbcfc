"""Discovery engine: target release in, verified header tree (or nothing) out."""

from __future__ import annotations

import logging
from pathlib import Path

from .config import HeadersSettings, coerce_settings
from .locator import CandidateLocator
from .version import KernelVersion, parse

logger = logging.getLogger(__name__)


class DiscoveryEngine:
    """Read-only composition of the candidate locator and the metadata validator.

    Stateless: every call re-reads the filesystem, so two calls against an
    unchanged tree return the same answer.
    """

    def __init__(self, settings: HeadersSettings | None = None):
        self.settings = settings or HeadersSettings()
        self.locator = CandidateLocator(self.settings)

    def discover(self, target: KernelVersion | str) -> Path | None:
        target = parse(target)
        logger.info(f"Searching for headers for kernel {target.full} (base {target.base}) under {self.settings.src_root}")
        candidate = self.locator.locate(target)
        if candidate is None:
            logger.error(f"VERSION MISMATCH: no verified kernel headers for {target.full}")
            return None
        return candidate.path


def discover_kernel_headers(target_version: KernelVersion | str, settings=None) -> Path | None:
    """Return the header tree whose release metadata equals ``target_version``, or None.

    :raises MalformedVersion: if ``target_version`` is empty or path-unsafe.
    """
    return DiscoveryEngine(coerce_settings(settings)).discover(target_version)


__all__ = ["DiscoveryEngine", "discover_kernel_headers"]
