from __future__ import annotations

import pytest

from gitdeck.utils.time import format_age


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (None, "never"),
        (0, "just now"),
        (4.9, "just now"),
        (-3, "just now"),
        (42, "42s ago"),
        (60, "1m ago"),
        (3599, "59m ago"),
        (7200, "2h ago"),
        (3 * 86400 + 5, "3d ago"),
    ],
)
def test_format_age(seconds: float | None, expected: str) -> None:
    assert format_age(seconds) == expected
