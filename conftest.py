"""Shared fixtures: a throwaway /usr/src + /lib/modules layout under tmp_path."""

from pathlib import Path

import pytest

from kheaders.config import HeadersSettings


@pytest.fixture
def settings(tmp_path) -> HeadersSettings:
    src = tmp_path / "usr" / "src"
    modules = tmp_path / "lib" / "modules"
    src.mkdir(parents=True)
    modules.mkdir(parents=True)
    return HeadersSettings(src_root=src, modules_root=modules)


@pytest.fixture
def make_tree(settings):
    """Create {src_root}/<name> with the given release metadata (None: no metadata file)."""
    def _make(name: str, release: str | None, content: str | None = None) -> Path:
        tree = settings.src_root / name
        tree.mkdir()
        (tree / "Makefile").write_text("# kernel makefile\n")
        if release is not None or content is not None:
            (tree / settings.metadata_file).write_text(content if content is not None else f"{release}\n")
        return tree
    return _make


@pytest.fixture
def module_dir(settings):
    """Factory for <modules_root>/<release> with a modules.dep."""
    def _make(release: str) -> Path:
        path = settings.modules_root / release
        path.mkdir()
        (path / "modules.dep").write_text("")
        return path
    return _make


@pytest.fixture(autouse=True)
def _isolated_logfile(tmp_path, monkeypatch):
    monkeypatch.setenv("HEADERLINK_LOGFILE", str(tmp_path / "headerlink.log"))
    monkeypatch.delenv("HEADERLINK_CONFIG", raising=False)
