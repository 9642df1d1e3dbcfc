"""Kernel version model: full release vs. base version."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from .errors import MalformedVersion

# Characters a kernel release may carry. Anything else (``/``, NUL, blanks,
# shell metacharacters) could escape ``linux-{full}`` once interpolated.
_SAFE_RELEASE = re.compile(r"[A-Za-z0-9][A-Za-z0-9._+~-]*")
_BASE_PREFIX = re.compile(r"[0-9]+(?:\.[0-9]+)*")
_RC_SUFFIX = re.compile(r"-rc([0-9]+)")

# The POSIX [[:space:]] class, so trimming agrees with the generated shell hook.
POSIX_WHITESPACE = " \t\n\r\x0b\x0c"


def _check_release(raw: str) -> str:
    if not raw:
        raise MalformedVersion("Kernel version is empty")
    if not _SAFE_RELEASE.fullmatch(raw) or ".." in raw:
        raise MalformedVersion(f"Kernel version {raw!r} contains path-unsafe characters")
    return raw


def base_of(full: str) -> str:
    """Return the version without build/distro suffix.

    ``6.18.7-arch1`` -> ``6.18.7``; ``6.19-rc6`` -> ``6.19``. A release with no
    numeric prefix is its own base.
    """
    match = _BASE_PREFIX.match(full)
    return match.group(0) if match else full


class KernelVersion(BaseModel):
    """A target kernel release.

    Only ``full`` takes part in acceptance decisions; ``base`` is used to
    build the second candidate path and nothing else.
    """

    model_config = ConfigDict(frozen=True)

    full: str
    base: str

    @field_validator("full", "base")
    @classmethod
    def _path_safe(cls, value: str) -> str:
        try:
            return _check_release(value)
        except MalformedVersion as exc:
            # pydantic expects a plain ValueError here
            raise ValueError(exc.message) from None

    @model_validator(mode="after")
    def _base_is_prefix(self) -> KernelVersion:
        if not self.full.startswith(self.base):
            raise ValueError(f"base {self.base!r} is not a prefix of {self.full!r}")
        return self

    @property
    def is_rc(self) -> bool:
        return "-rc" in self.full

    @property
    def rc_number(self) -> int | None:
        match = _RC_SUFFIX.search(self.full)
        return int(match.group(1)) if match else None

    def __str__(self) -> str:
        return self.full


def parse(raw: str | KernelVersion) -> KernelVersion:
    """Build a KernelVersion from caller input, raising MalformedVersion if unsafe."""
    if isinstance(raw, KernelVersion):
        return raw
    if not isinstance(raw, str):
        raise MalformedVersion(f"Kernel version must be a string, got {type(raw).__name__}")
    full = _check_release(raw.strip(POSIX_WHITESPACE))
    return KernelVersion(full=full, base=base_of(full))


__all__ = ["POSIX_WHITESPACE", "KernelVersion", "base_of", "parse"]
