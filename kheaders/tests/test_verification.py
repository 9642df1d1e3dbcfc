import os

import pytest

from kheaders import check_dkms_compatibility, create_kernel_symlinks_fallback, verify_kernel_installation
from kheaders.verification import verify_kernel_module_directory, verify_symlink
from kheaders.version import parse

RELEASE = "6.18.7-arch1"


def test_module_directory_requires_modules_dep(settings):
    path = settings.modules_root / RELEASE
    assert not verify_kernel_module_directory(path)
    path.mkdir()
    assert not verify_kernel_module_directory(path)
    (path / "modules.dep").write_text("")
    assert verify_kernel_module_directory(path)


def test_verify_symlink(make_tree, module_dir):
    good = make_tree("linux-6.18.7-arch1", RELEASE)
    bad = make_tree("linux-goatd-mainline", "6.19.0")
    modules = module_dir(RELEASE)
    target = parse(RELEASE)
    assert not verify_symlink(modules / "build", target)
    os.symlink(bad, modules / "build")
    assert not verify_symlink(modules / "build", target)
    os.symlink(good, modules / "source")
    assert verify_symlink(modules / "source", target)


def test_plain_directory_is_not_a_valid_link(make_tree, module_dir):
    make_tree("linux-6.18.7-arch1", RELEASE)
    modules = module_dir(RELEASE)
    (modules / "build").mkdir()
    (modules / "build" / ".kernelrelease").write_text(RELEASE)
    assert not verify_symlink(modules / "build", parse(RELEASE))


def test_installation_ready_after_linking(settings, make_tree, module_dir):
    verified = make_tree("linux-6.18.7-arch1", RELEASE)
    module_dir(RELEASE)
    before = verify_kernel_installation(RELEASE, settings)
    assert before.module_dir_exists
    assert before.headers_installed
    assert not before.ready_for_dkms

    create_kernel_symlinks_fallback(RELEASE, settings=settings)
    after = verify_kernel_installation(RELEASE, settings)
    assert after.ready_for_dkms
    assert after.headers_path == verified
    summary = after.summary()
    assert summary["ready_for_dkms"] is True
    assert summary["headers_path"] == str(verified)


def test_installation_without_headers(settings, make_tree):
    make_tree("linux-goatd-mainline", "6.19.0")
    status = verify_kernel_installation(RELEASE, settings)
    assert not status.headers_installed
    assert status.headers_path is None
    assert not status.module_dir_exists
    assert not status.ready_for_dkms


def test_installation_follows_configured_link_names(settings, make_tree, module_dir):
    only_build = settings.merge({"link_names": ["build"]})
    make_tree("linux-6.18.7-arch1", RELEASE)
    modules = module_dir(RELEASE)
    create_kernel_symlinks_fallback(RELEASE, settings=only_build)
    assert not os.path.lexists(modules / "source")
    status = verify_kernel_installation(RELEASE, only_build)
    assert status.links == {"build": True}
    assert status.ready_for_dkms


def test_stable_kernel_is_dkms_compatible():
    compat = check_dkms_compatibility("6.18.7-arch1", "590.48.01")
    assert not compat.is_rc_kernel
    assert compat.nvidia_compatible
    assert compat.summary() == "Stable kernel 6.18.7-arch1 - DKMS ready"


@pytest.mark.parametrize("kernel, driver, compatible", [
    ("6.19-rc6", "590.48.01", False),
    ("6.19-rc7-goatd", "590.99", False),
    ("6.19.0-rc8", "590.48.01", False),
    ("6.19-rc5", "590.48.01", True),
    ("6.19-rc6", "590.100.02", True),
    ("6.19-rc6", "595.10", True),
    ("6.20-rc6", "590.48.01", True),
    ("6.190-rc6", "590.48.01", True),
])
def test_nvidia_memremap_issue(kernel, driver, compatible):
    compat = check_dkms_compatibility(kernel, driver)
    assert compat.is_rc_kernel
    assert compat.nvidia_compatible is compatible
    assert compat.nvidia_driver_version == driver
    if not compatible:
        assert compat.reason.startswith("KNOWN ISSUE: NVIDIA 590.")
        assert "Incompatible" in compat.summary()


def test_rc_kernel_without_driver_version():
    compat = check_dkms_compatibility("6.19-rc6")
    assert compat.rc_version == 6
    assert compat.nvidia_compatible
    assert compat.summary() == "RC kernel 6.19-rc6 (rc6) - Compatible"
