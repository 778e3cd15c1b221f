"""
Tests for utility helpers (IDs, timeouts, JSON repair)
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import json
import time
from datetime import datetime

import pytest

from brainstorm.utils.helpers import (
    call_with_timeout,
    generate_message_id,
    generate_session_id,
    repair_json,
    utc_now_iso,
)


def test_session_ids():
    assert len(generate_session_id(short=True)) == 8
    assert len(generate_session_id()) == 32
    assert generate_session_id() != generate_session_id()


def test_message_id_is_uuid_string():
    assert len(generate_message_id()) == 36


def test_utc_now_iso_parses():
    parsed = datetime.fromisoformat(utc_now_iso())
    assert parsed.tzinfo is not None


def test_repair_strips_fences_and_chatter():
    text = 'Sure!\n```json\n{"category": "SUFFICIENT"}\n```\nHope that helps.'
    assert json.loads(repair_json(text)) == {"category": "SUFFICIENT"}


def test_repair_closes_truncated_object():
    text = '{"category": "NEEDS_DEPTH", "detail": {"x": 1}'
    assert json.loads(repair_json(text)) == {"category": "NEEDS_DEPTH", "detail": {"x": 1}}


def test_repair_without_braces_returns_text():
    assert repair_json("  no json  ") == "no json"


def test_call_with_timeout_inline():
    assert call_with_timeout(lambda a, b=0: a + b, None, 2, b=3) == 5


def test_call_with_timeout_fast_call():
    assert call_with_timeout(lambda: "done", 1.0) == "done"


def test_call_with_timeout_expires():
    with pytest.raises(TimeoutError):
        call_with_timeout(time.sleep, 0.05, 0.5)


def test_call_with_timeout_propagates_errors():
    def fail():
        raise KeyError("missing")

    with pytest.raises(KeyError):
        call_with_timeout(fail, 1.0)
