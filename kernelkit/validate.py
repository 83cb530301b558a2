"""Character-set checks for paths, tags and tag-qualified locations."""

from __future__ import annotations


def _is_path_char(ch: str) -> bool:
    code = ord(ch)
    return (
        45 <= code <= 57  # '-', '.', '/', digits
        or 65 <= code <= 90  # upper case letters
        or code == 95  # '_'
        or 97 <= code <= 122  # lower case letters
    )


def _is_tag_char(ch: str) -> bool:
    return ch not in "-./" and _is_path_char(ch)


def is_valid_path(s: str) -> bool:
    """Return True if s holds only letters, digits, '-', '.', '/' and '_'."""
    return all(_is_path_char(ch) for ch in s)


def is_valid_tag(s: str) -> bool:
    """Return True if s holds only letters, digits and '_'."""
    return all(_is_tag_char(ch) for ch in s)


def is_valid_location(s: str) -> bool:
    """Return True if s is a valid tag, a colon, then a valid path.

    Everything before the first colon is the tag and everything after it
    the path; without a colon the whole string is taken as the tag.
    """
    tag, _, path = s.partition(":")
    return is_valid_tag(tag) and is_valid_path(path)