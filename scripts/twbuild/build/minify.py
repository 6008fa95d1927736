"""
CSS minification for the style step.

A small regex-based minifier: it strips comments, collapses whitespace
and drops redundant separators. String literals are never modified.
Comments starting with ``/*!`` (license banners) are kept.
"""

from __future__ import annotations

import re

# Strings first so that comment markers inside them are not treated as comments
_STRING_OR_COMMENT = re.compile(
    r"""(?P<string>"(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*')|(?P<comment>/\*.*?\*/)""",
    re.DOTALL,
)

_STRING = re.compile(r"""("(?:\\.|[^"\\])*"|'(?:\\.|[^'\\])*')""")

_WHITESPACE = re.compile(r"\s+")

# Space around these is never significant. ':' is handled separately because
# "a :hover" and "a:hover" are different selectors.
_AROUND_PUNCTUATION = re.compile(r"\s*([{};,>])\s*")

_AFTER_COLON = re.compile(r":\s+")

_TRAILING_SEMICOLON = re.compile(r";+}")


def _strip_comments(css: str) -> str:
    def replace(match: re.Match) -> str:
        if match.group("string") is not None:
            return match.group("string")
        comment = match.group("comment")
        return comment if comment.startswith("/*!") else ""

    return _STRING_OR_COMMENT.sub(replace, css)


def _compress(chunk: str) -> str:
    chunk = _WHITESPACE.sub(" ", chunk)
    chunk = _AROUND_PUNCTUATION.sub(r"\1", chunk)
    chunk = _AFTER_COLON.sub(":", chunk)
    return _TRAILING_SEMICOLON.sub("}", chunk)


def minify_css(css: str) -> str:
    """Return a minified copy of a stylesheet."""
    css = _strip_comments(css)

    # Odd indices of the split are string literals
    parts = _STRING.split(css)
    for i in range(0, len(parts), 2):
        parts[i] = _compress(parts[i])

    return "".join(parts).strip()
