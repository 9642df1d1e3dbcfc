"""Settings for header discovery, loadable from YAML or JSON."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

CONFIG_ENV = "HEADERLINK_CONFIG"

_SAFE_TOKEN = re.compile(r"[A-Za-z0-9._-]+")


class HeadersSettings(BaseModel):
    """Filesystem conventions used by discovery, the link manager and the hook template."""

    src_root: Path = Field(default=Path("/usr/src"), description="Directory holding linux-* header trees")
    modules_root: Path = Field(default=Path("/lib/modules"), description="Directory holding <release>/build links")
    metadata_file: str = Field(default=".kernelrelease", description="Release file inside each header tree")
    branding_markers: list[str] = Field(default_factory=lambda: ["goatd"], description="Name fragments of branded trees")
    link_names: list[str] = Field(default_factory=lambda: ["build", "source"])
    mpl_file: str = Field(default=".goatd_metadata", description="Workspace metadata written by the build")
    mpl_key: str = Field(default="GOATD_KERNELRELEASE")

    @field_validator("metadata_file", "mpl_file", "mpl_key")
    @classmethod
    def _plain_name(cls, value: str) -> str:
        if not _SAFE_TOKEN.fullmatch(value) or value in (".", ".."):
            raise ValueError(f"{value!r} must be a plain file name")
        return value

    @field_validator("branding_markers", "link_names")
    @classmethod
    def _plain_tokens(cls, values: list[str]) -> list[str]:
        # These end up inside shell case patterns and link paths.
        for value in values:
            if not _SAFE_TOKEN.fullmatch(value) or value in (".", ".."):
                raise ValueError(f"{value!r} may only contain letters, digits, '.', '_' and '-'")
        return values

    def module_dir(self, full_release: str) -> Path:
        return self.modules_root / full_release

    def merge(self, patch: Mapping[str, Any]) -> HeadersSettings:
        """Return new settings with ``patch`` applied."""
        payload = self.model_dump(mode="python")
        payload.update(patch)
        return HeadersSettings.model_validate(payload)


def coerce_settings(value: Any) -> HeadersSettings:
    """Normalize supported inputs into a HeadersSettings instance."""
    if value is None:
        return HeadersSettings()
    if isinstance(value, HeadersSettings):
        return value
    payload: Mapping[str, Any]
    if isinstance(value, Mapping):
        payload = value
    elif isinstance(value, (str, bytes)):
        payload = _load_text_payload(value)
    elif isinstance(value, Path):
        payload = _load_text_payload(value.read_text())
    else:
        raise TypeError("Unsupported value for headers settings")
    try:
        return HeadersSettings.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"Invalid headers settings: {exc}") from exc


def load_settings(path: str | Path | None = None) -> HeadersSettings:
    """Load settings from ``path``, $HEADERLINK_CONFIG, or fall back to defaults."""
    if path is None:
        path = os.environ.get(CONFIG_ENV) or None
    if path is None:
        return HeadersSettings()
    return coerce_settings(Path(path))


def _load_text_payload(raw: str | bytes) -> dict[str, Any]:
    """Interpret raw text as YAML first, falling back to JSON."""
    text = raw.decode() if isinstance(raw, bytes) else raw
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("Headers settings must be a mapping")
    return data


__all__ = ["CONFIG_ENV", "HeadersSettings", "coerce_settings", "load_settings"]
