"""Small text helpers shared by the renderers."""

from __future__ import annotations

import re

# Single-dollar span not touching another dollar sign.
_INLINE_MATH_RE = re.compile(r"(?<!\$)\$(?!\$)(.+?)(?<!\$)\$(?!\$)")
_IMAGE_RE = re.compile(r"!\[(.*?)\]\((.*?)\)")

# Anything containing one of these needs a markup-aware renderer.
RICH_MARKERS: tuple[str, ...] = ("$$", "![", "|", "\\begin", "<img")


def normalize_inline_math(text: str) -> str:
    """Trim *text* and rewrite ``$x$`` as ``$$x$$``.

    Math engines that only understand the double-dollar form render inline
    formulas correctly after this.
    """
    return _INLINE_MATH_RE.sub(lambda m: f"$${m.group(1)}$$", text.strip())


def is_plain_text(text: str) -> bool:
    return not any(marker in text for marker in RICH_MARKERS)


def split_image(text: str) -> tuple[str, str] | None:
    """``(alt, url)`` of the first image reference in *text*."""
    m = _IMAGE_RE.search(text)
    if m is None:
        return None
    return m.group(1), m.group(2)


def display_math_body(text: str) -> str:
    """The formula between the outer ``$$`` fences."""
    body = text.strip()
    if body.startswith("$$"):
        body = body[2:]
    if body.endswith("$$"):
        body = body[:-2]
    return body.strip()
