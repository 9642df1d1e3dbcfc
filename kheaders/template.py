"""
Template emitter.

Renders the post-install shell hook that mirrors DiscoveryEngine and
SymlinkManager for package-manager hooks, where this package is not
importable. The hook is rendered from the same HeadersSettings the
in-process engine uses, so both read the same roots, metadata file name and
branding markers.
"""

from __future__ import annotations

import logging
import os
import shlex
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .config import HeadersSettings

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"
HOOK_TEMPLATE = "repair_symlinks.sh.j2"

# Must stay in sync with the exit codes of the rendered hook and of headerctl.
EXIT_OK = 0
EXIT_VERSION_MISMATCH = 1
EXIT_MALFORMED_VERSION = 2
EXIT_LINK_FAILED = 3
EXIT_POST_LINK_FAILED = 4
MISMATCH_TAG = "VERSION MISMATCH"


def _shquote(value) -> str:
    return shlex.quote(str(value))


class TemplateEmitter:
    """Render the shell hook for a given set of settings."""

    def __init__(self, settings: HeadersSettings | None = None):
        self.settings = settings or HeadersSettings()
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )
        self.env.filters["shquote"] = _shquote

    def context(self, install_hook: bool = False) -> dict:
        return {
            "src_root": str(self.settings.src_root),
            "modules_root": str(self.settings.modules_root),
            "metadata_file": self.settings.metadata_file,
            "branding_markers": list(self.settings.branding_markers),
            "link_names": list(self.settings.link_names),
            "install_hook": install_hook,
        }

    def render(self, install_hook: bool = False) -> str:
        """Return the hook text.

        ``install_hook=False`` gives an executable script (``repair``,
        ``discover`` and ``check DIR`` modes); ``True`` gives a pacman
        ``.install`` body defining post_install/post_upgrade.
        """
        template = self.env.get_template(HOOK_TEMPLATE)
        return template.render(**self.context(install_hook))

    def write(self, path: Path | str, install_hook: bool = False) -> Path:
        path = Path(path)
        path.write_text(self.render(install_hook), encoding="utf-8")
        os.chmod(path, 0o644 if install_hook else 0o755)
        logger.info(f"Wrote {'install hook' if install_hook else 'hook script'} to {path}")
        return path


__all__ = [
    "EXIT_LINK_FAILED",
    "EXIT_MALFORMED_VERSION",
    "EXIT_OK",
    "EXIT_POST_LINK_FAILED",
    "EXIT_VERSION_MISMATCH",
    "MISMATCH_TAG",
    "TemplateEmitter",
]
