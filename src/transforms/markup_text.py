"""Description markup to plain text conversion."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, ParserRejectedMarkup

from core.errors import BrandsTransformError

_BLOCK_TAGS = ("p", "div", "li", "blockquote", "h1", "h2", "h3", "h4", "h5", "h6", "tr")
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def markup_to_text(markup: str) -> str:
    """Convert description markup into plain text.

    Block elements become paragraphs separated by a blank line and
    whitespace inside a paragraph collapses to single spaces.

    Args:
        markup: HTML or XML description fragment.

    Returns:
        Plain-text description, empty for empty markup.

    Raises:
        BrandsTransformError: If the markup cannot be parsed.
    """
    if not markup.strip():
        return ""
    try:
        soup = BeautifulSoup(markup, "lxml")
    except (ParserRejectedMarkup, TypeError, ValueError) as error:
        raise BrandsTransformError(
            f"Failed to convert description markup to text: {error}."
        ) from error
    for block in soup.find_all(_BLOCK_TAGS):
        block.insert_after("\n\n")
    text = soup.get_text(" ")
    paragraphs = (" ".join(chunk.split()) for chunk in _PARAGRAPH_BREAK.split(text))
    return "\n\n".join(paragraph for paragraph in paragraphs if paragraph)
