import pytest
from packaging.version import InvalidVersion

from clabkit.version import (
    SLUG,
    VERSION,
    docs_link_from_ver,
    is_newer,
    new_version_notification,
    version_text,
)


@pytest.mark.parametrize(
    "ver, expected",
    [("0.15.0", "0.15/"), ("0.15.1", "0.15/#0151")],
)
def test_docs_link(ver, expected):
    assert docs_link_from_ver(ver) == expected


def test_docs_link_with_v_prefix_matches_plain():
    assert docs_link_from_ver("v0.15.1") == docs_link_from_ver("0.15.1")


def test_docs_link_default_version_has_no_anchor():
    assert "#" not in docs_link_from_ver(VERSION)


def test_docs_link_invalid():
    with pytest.raises(InvalidVersion):
        docs_link_from_ver("not-a-version")


def test_version_text_contents():
    text = version_text("0.15.1", "abc123", "today")
    assert text.startswith(SLUG)
    assert "    version: 0.15.1\n" in text
    assert "     commit: abc123\n" in text
    assert "       date: today\n" in text
    assert text.endswith("/rn/" + docs_link_from_ver("0.15.1") + "\n")


def test_is_newer():
    assert is_newer("0.16.0", "0.15.3") is True
    assert is_newer("0.15.3", "0.15.3") is False
    assert is_newer("0.15.2", "0.15.3") is False


def test_is_newer_invalid():
    assert is_newer("garbage", "0.15.3") is False


def test_notification_mentions_version():
    msg = new_version_notification("0.16.1")
    assert "0.16.1" in msg
    assert docs_link_from_ver("0.16.1") in msg