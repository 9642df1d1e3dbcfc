"""Exceptions raised by the header discovery and symlink modules."""

import logging

mylogger = logging.getLogger(__name__)


class HeadersError(Exception):
    """Base error with a message, optionally logged when raised."""

    exit_code = 1

    def __init__(self, message="A kernel headers error occurred", log=False):
        self.message = message
        super().__init__(self.message)
        if log:
            mylogger.error(message)


class HeadersWarning(Exception):
    """Non fatal condition, reported and then handled by the caller."""

    def __init__(self, message="A kernel headers warning occurred", log=False):
        self.message = message
        super().__init__(self.message)
        if log:
            mylogger.warning(message)


class MalformedVersion(HeadersError, ValueError):
    """The version string is empty or unsafe to interpolate into a path."""

    exit_code = 2


class MetadataError(HeadersError):
    """A candidate directory exists but its release metadata cannot be used."""


class MetadataMissing(MetadataError):
    pass


class MetadataUnreadable(MetadataError):
    pass


class SymlinkError(HeadersError):
    """Failure while wiring the build/source links."""

    exit_code = 3


class NoVerifiedHeaders(SymlinkError):
    """Every locator strategy was exhausted without a metadata match."""

    exit_code = 1

    def __init__(self, expected: str, log=False):
        self.expected = expected
        super().__init__(f"VERSION MISMATCH: no verified kernel headers for {expected}", log)


class ModuleDirectoryMissing(SymlinkError):
    pass


class SymlinkCreationFailed(SymlinkError):
    pass


class PostLinkVerificationFailed(SymlinkError):
    exit_code = 4


class StaleSymlinkDetected(HeadersWarning):
    """An existing link points at a tree whose metadata does not match."""

    def __init__(self, link, current_target, log=False):
        self.link = link
        self.current_target = current_target
        super().__init__(f"Stale symlink {link} -> {current_target}, will be replaced", log)


__all__ = [
    "HeadersError",
    "HeadersWarning",
    "MalformedVersion",
    "MetadataError",
    "MetadataMissing",
    "MetadataUnreadable",
    "ModuleDirectoryMissing",
    "NoVerifiedHeaders",
    "PostLinkVerificationFailed",
    "StaleSymlinkDetected",
    "SymlinkCreationFailed",
    "SymlinkError",
]
