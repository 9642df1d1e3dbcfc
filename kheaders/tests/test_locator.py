import logging

from kheaders.locator import CandidateLocator
from kheaders.version import parse

TARGET = parse("6.18.7-arch1")


def test_exact_strategy_wins(settings, make_tree):
    make_tree("linux-6.18.7-arch1", "6.18.7-arch1")
    make_tree("linux-aaa", "6.18.7-arch1")
    found = CandidateLocator(settings).locate(TARGET)
    assert found.strategy == "exact"
    assert found.path == settings.src_root / "linux-6.18.7-arch1"


def test_base_strategy_requires_metadata(settings, make_tree):
    make_tree("linux-6.18.7", "6.18.7")
    assert CandidateLocator(settings).locate(TARGET) is None


def test_base_strategy_accepts_verified_tree(settings, make_tree):
    make_tree("linux-6.18.7", "6.18.7-arch1")
    found = CandidateLocator(settings).locate(TARGET)
    assert found.strategy == "base"
    assert found.path == settings.src_root / "linux-6.18.7"


def test_exact_name_with_wrong_metadata_falls_through_to_scan(settings, make_tree):
    make_tree("linux-6.18.7-arch1", "6.18.6-arch1")
    make_tree("linux-headers-custom", "6.18.7-arch1")
    found = CandidateLocator(settings).locate(TARGET)
    assert found.strategy == "scan"
    assert found.path.name == "linux-headers-custom"


def test_scan_order_is_byte_sorted_with_branded_last(settings, make_tree):
    for name in ("linux-zeta", "linux-goatd-b", "linux-Alpha", "linux-alpha", "linux-goatd-a"):
        make_tree(name, "x")
    (settings.src_root / "linux-not-a-dir").write_text("")
    (settings.src_root / "other").mkdir()
    order = [c.path.name for c in CandidateLocator(settings).scan_order()]
    assert order == ["linux-Alpha", "linux-alpha", "linux-zeta", "linux-goatd-a", "linux-goatd-b"]


def test_scan_order_missing_src_root(settings):
    settings.src_root.rmdir()
    assert CandidateLocator(settings).scan_order() == []


def test_branded_and_plain_both_matching_prefers_plain(settings, make_tree):
    make_tree("linux-aaa-goatd", "6.18.7-arch1")
    make_tree("linux-zzz", "6.18.7-arch1")
    found = CandidateLocator(settings).locate(TARGET)
    assert found.path.name == "linux-zzz"
    assert not found.is_branded


def test_branded_tree_still_eligible(settings, make_tree):
    make_tree("linux-goatd-gaming", "6.18.7-arch1")
    make_tree("linux-other", "6.17.1")
    found = CandidateLocator(settings).locate(TARGET)
    assert found.path.name == "linux-goatd-gaming"
    assert found.is_branded
    assert found.claimed_version_from_name == "goatd-gaming"


def test_exactness_over_branding(settings, make_tree):
    # an exact tree always beats a branded one with a different release
    make_tree("linux-goatd-6.18.7-arch1", "6.19.0")
    make_tree("linux-6.18.7-arch1", "6.18.7-arch1")
    found = CandidateLocator(settings).locate(TARGET)
    assert found.path.name == "linux-6.18.7-arch1"


def test_no_fuzzy_fallback(settings, make_tree):
    make_tree("linux-6.18.7", "6.18.7")
    make_tree("linux-6.18.7-arch1-goatd", "6.18.7-arch2")
    make_tree("linux-6.18.7-arch1-extra", "6.18.7-arch1-extra")
    make_tree("linux-6.18.7-arch1", None)
    assert CandidateLocator(settings).locate(TARGET) is None


def test_branding_fallback_is_announced(settings, make_tree, caplog):
    make_tree("linux-goatd-mainline", "6.19.0")
    with caplog.at_level(logging.DEBUG, logger="kheaders.locator"):
        assert CandidateLocator(settings).locate(TARGET) is None
    messages = [r.getMessage() for r in caplog.records]
    assert any("[STRATEGY-1]" in m for m in messages)
    assert any("[STRATEGY-2]" in m for m in messages)
    assert any("[STRATEGY-3]" in m for m in messages)
    assert any("[BRANDING-FALLBACK]" in m for m in messages)


def test_candidates_order(settings, make_tree):
    make_tree("linux-goatd-x", "1")
    make_tree("linux-plain", "1")
    strategies = [(c.strategy, c.path.name) for c in CandidateLocator(settings).candidates(TARGET)]
    assert strategies == [
        ("exact", "linux-6.18.7-arch1"),
        ("base", "linux-6.18.7"),
        ("scan", "linux-plain"),
        ("scan", "linux-goatd-x"),
        ("branding-fallback", "linux-goatd-x"),
    ]


def test_base_strategy_skipped_when_base_equals_full(settings):
    strategies = [c.strategy for c in CandidateLocator(settings).candidates(parse("6.18.7"))]
    assert strategies == ["exact"]
