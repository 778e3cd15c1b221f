"""
Outline export - render an Outline as plain text or markdown

Formats:
- text:     "Title\\n\\ncontent\\n\\n" per section, joined by "\\n---\\n\\n"
- markdown: "## Title\\n\\ncontent\\n\\n" per section, same separator
"""

from brainstorm.results import Outline

EXPORT_FORMATS = ("text", "markdown")

SECTION_SEPARATOR = "\n---\n\n"


def export_outline(outline: Outline, fmt: str = "text") -> str:
    """
    Render outline sections for download or copy.

    Args:
        outline: Generated outline
        fmt: 'text' or 'markdown'

    Returns:
        str: Rendered outline

    Raises:
        ValueError: Unknown format
    """
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unknown export format {fmt!r}, expected one of {EXPORT_FORMATS}")

    heading = "## " if fmt == "markdown" else ""
    blocks = [
        f"{heading}{section.title}\n\n{section.content}\n\n"
        for section in outline.sections
    ]
    return SECTION_SEPARATOR.join(blocks)
