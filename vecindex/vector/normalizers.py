"""
Key normalizers.

A normalizer is any callable ``str -> str`` applied to a key before it is
inserted into or looked up in a vocabulary. It must be idempotent so that
already-normalized keys survive a second pass unchanged.
"""

import html
import re
from typing import Callable
from urllib.parse import unquote

KeyNormalizer = Callable[[str], str]

_WHITESPACE = re.compile(r"\s+")
_WIKI_PREFIX = re.compile(r"^.+/wiki/")
_ANCHOR = re.compile(r"#.+$")
_BARE_PERCENT = re.compile(r"%(?![0-9A-Fa-f]{2})")


def identity(key: str) -> str:
    return key


def lowercase(key: str) -> str:
    """Lowercase and strip surrounding whitespace."""
    return key.strip().lower()


def wikipedia_url(key: str) -> str:
    """
    Clean a Wikipedia URL or page title into a canonical page id.

    Strips the host path and anchors, decodes percent escapes and HTML
    entities, and replaces spaces with underscores, e.g.
    ``https://en.wikipedia.org/wiki/Diabetes%20mellitus`` -> ``Diabetes_mellitus``.
    """
    title = _WIKI_PREFIX.sub("", key, count=1)
    title = _ANCHOR.sub("", title, count=1)
    title = _BARE_PERCENT.sub("%25", title)
    try:
        title = unquote(title, errors="strict")
    except UnicodeDecodeError:
        # keep the escaped title if the bytes are not valid UTF-8
        pass
    title = html.unescape(title)
    return title.replace(" ", "_").strip()


def aspect_heading(key: str) -> str:
    """Lowercase a section heading and join its words with underscores."""
    return _WHITESPACE.sub("_", key.strip().lower())
