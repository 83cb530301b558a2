import pytest

from kernelkit.validate import is_valid_location, is_valid_path, is_valid_tag


@pytest.mark.parametrize(
    "path",
    [
        "/root/is-valid.path",
        "abcdefghijklmnopqrstuvwxyz",
        "ABCDEFGHIJKLMNOPQRSTUVWXYZ",
        "0123456789",
    ],
)
def test_valid_paths(path):
    assert is_valid_path(path) is True


def test_invalid_path():
    assert is_valid_path("/root/isn't/valid:") is False


@pytest.mark.parametrize(
    "tag",
    ["TAG", "abcdefghijklmnopqrstuvwxyz", "ABCDEFGHIJKLMNOPQRSTUVWXYZ", "0123456789"],
)
def test_valid_tags(tag):
    assert is_valid_tag(tag) is True


def test_invalid_tag():
    assert is_valid_tag(":NOT-A-TAG") is False


def test_tag_rejects_path_punctuation():
    assert is_valid_tag("a/b") is False
    assert is_valid_tag("a.b") is False


def test_valid_location():
    assert is_valid_location("HOME:path/to/root/dir") is True


def test_invalid_location():
    assert is_valid_location("BAD-TAG:p@th/:/root/dir") is False


def test_location_with_bad_path_part():
    assert is_valid_location("HOME:p@th") is False


def test_non_ascii_rejected():
    assert is_valid_path("caf\u00e9") is False