"""
Tests for outline export formats
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from brainstorm.results import Outline, OutlineSection
from brainstorm.utils.outline_export import export_outline


OUTLINE = Outline(
    sections=(
        OutlineSection(id='section-0', title='Opening Hook', content='The buzzer.'),
        OutlineSection(id='section-1', title='Reflection', content='I learned.'),
    ),
    explanation='',
    follow_up_prompt='',
    generated_at='2024-01-01T00:00:00+00:00',
    prompt_id='challenge',
)


def test_text_export():
    assert export_outline(OUTLINE, 'text') == (
        "Opening Hook\n\nThe buzzer.\n\n"
        "\n---\n\n"
        "Reflection\n\nI learned.\n\n"
    )


def test_markdown_export():
    assert export_outline(OUTLINE, 'markdown') == (
        "## Opening Hook\n\nThe buzzer.\n\n"
        "\n---\n\n"
        "## Reflection\n\nI learned.\n\n"
    )


def test_default_format_is_text():
    assert export_outline(OUTLINE) == export_outline(OUTLINE, 'text')


def test_empty_outline():
    empty = Outline(sections=(), explanation='', follow_up_prompt='', generated_at='t', prompt_id='choice')
    assert export_outline(empty, 'markdown') == ""


def test_unknown_format():
    with pytest.raises(ValueError):
        export_outline(OUTLINE, 'pdf')
