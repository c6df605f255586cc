"""Basename glob matching for ``find -name``."""

from __future__ import annotations


def glob_match(pattern: str, name: str) -> bool:
    """Match ``name`` against a shell-style glob.

    ``*`` matches any run of characters (including none), ``?`` exactly
    one. Every other character is literal; there are no character
    classes. The pattern must cover the whole name.

    Two-pointer scan, no recursion: on a mismatch it backtracks to the
    last ``*`` and lets it swallow one more character.
    """
    if pattern == "*":
        return True
    p = n = 0
    star_p = star_n = -1
    while n < len(name):
        if p < len(pattern) and pattern[p] == "*":
            star_p, star_n = p, n
            p += 1
        elif p < len(pattern) and pattern[p] in ("?", name[n]):
            p += 1
            n += 1
        elif star_p >= 0:
            p = star_p + 1
            star_n += 1
            n = star_n
        else:
            return False
    while p < len(pattern) and pattern[p] == "*":
        p += 1
    return p == len(pattern)
