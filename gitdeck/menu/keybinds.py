from __future__ import annotations

# Home-row keys for the right hand, index finger stretch first and pinky last.
DIFF_KEYS = ("h", "j", "k", "l", ";")
DIRECT_KEYS = ("H", "J", "K", "L", ":")

MAX_KEYBINDS = len(DIFF_KEYS) ** 2


def _ergonomic_order(keys: tuple[str, ...]) -> tuple[str, ...]:
    """Order every two-key code over `keys` by how easy it is to type.

    Same-key pairs come first, then adjacent keys rolled outward (towards the
    pinky), adjacent keys rolled inward, skip-one outward, skip-one inward, and
    the remaining wide pairs.
    """
    n = len(keys)
    order: list[tuple[int, int]] = [(i, i) for i in range(n)]
    for distance in (1, 2):
        order += [(i, i + distance) for i in range(n - distance)]
        order += [(i + distance, i) for i in range(n - distance)]
    for distance in range(3, n):
        for i in range(n - distance):
            order += [(i, i + distance), (i + distance, i)]
    return tuple(keys[a] + keys[b] for a, b in order)


DIFF_SEQUENCE: tuple[str, ...] = _ergonomic_order(DIFF_KEYS)
DIRECT_SEQUENCE: tuple[str, ...] = _ergonomic_order(DIRECT_KEYS)


def assign(ordinal: int) -> tuple[str | None, str | None]:
    """Return the `(diff_code, direct_code)` pair for the Nth file row.

    Args:
        ordinal: 1-based position of the file row across the whole build.

    Returns:
        The codes at that position of both sequences, or `(None, None)` once
        the sequences are exhausted.
    """
    if 1 <= ordinal <= MAX_KEYBINDS:
        return DIFF_SEQUENCE[ordinal - 1], DIRECT_SEQUENCE[ordinal - 1]
    return None, None


def is_keybind_prefix(key: str) -> bool:
    return key in DIFF_KEYS or key in DIRECT_KEYS
