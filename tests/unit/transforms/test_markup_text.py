"""Unit tests for description markup conversion."""

from __future__ import annotations

from transforms.markup_text import markup_to_text


def test_markup_to_text_strips_paragraph_tags() -> None:
    """A single paragraph should convert to its text."""
    text = markup_to_text("<p>DescriptionXML</p>")

    assert text == "DescriptionXML"


def test_markup_to_text_separates_paragraphs() -> None:
    """Block elements should become blank-line separated paragraphs."""
    text = markup_to_text("<p>First  line</p><p>Second\nline</p>")

    assert text == "First line\n\nSecond line"


def test_markup_to_text_keeps_inline_text() -> None:
    """Inline markup should be flattened into the paragraph text."""
    text = markup_to_text("<p>The <b>Financial</b> Times</p>")

    assert text == "The Financial Times"


def test_markup_to_text_returns_empty_for_blank_markup() -> None:
    """Blank markup should convert to an empty description."""
    assert markup_to_text("  ") == ""
