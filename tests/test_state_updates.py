"""
Tests for merging turn results into conversation snapshots
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from brainstorm.contracts import ConversationState, Message, Stage
from brainstorm.core.stage_sequencer import next_stage_after, resolve_real_stage
from brainstorm.core.state_updates import apply_decision, go_back, record_question
from brainstorm.results import TurnDecision


def conversation_at(stage, responses=(), progress=0):
    return ConversationState(
        prompt_id='belief',
        current_stage=stage,
        responses=tuple(responses),
        progress_percentage=progress,
    )


def test_record_question_appends_assistant_message():
    conversation = conversation_at(Stage.Q1_EXPLORATION)
    updated = record_question(conversation, "What comes to mind?", Stage.Q1_EXPLORATION)

    assert len(updated.messages) == 1
    message = updated.messages[0]
    assert message.role == 'assistant'
    assert message.stage == Stage.Q1_EXPLORATION
    assert message.id is not None
    assert message.timestamp is not None


def test_record_question_skips_duplicate():
    conversation = record_question(conversation_at(Stage.Q2_SELECTION), "Which one?", Stage.Q2_SELECTION)
    again = record_question(conversation, "  Which one?  ", Stage.Q2_SELECTION)
    assert again is conversation


def test_record_question_same_text_other_stage_appends():
    conversation = record_question(conversation_at(Stage.Q2_SELECTION), "Say more?", Stage.Q2_SELECTION)
    updated = record_question(conversation, "Say more?", Stage.Q3_SPECIFIC_MOMENT)
    assert len(updated.messages) == 2


def test_record_question_ignores_empty_text():
    conversation = conversation_at(Stage.Q2_SELECTION)
    assert record_question(conversation, "", Stage.Q2_SELECTION) is conversation


def test_apply_follow_up_decision():
    conversation = conversation_at(Stage.Q3_SPECIFIC_MOMENT, [('Q1_EXPLORATION', 'a'), ('Q2_SELECTION', 'b')], 28)
    decision = TurnDecision(
        next_stage=Stage.FOLLOWUP,
        needs_follow_up=True,
        progress_percentage=42,
        follow_up_question="What did the room look like?",
    )

    updated = apply_decision(conversation, "It was hard", decision)

    assert updated.current_stage == Stage.FOLLOWUP
    assert updated.needs_follow_up is True
    assert updated.progress_percentage == 42
    assert updated.response_for(Stage.Q3_SPECIFIC_MOMENT) == "It was hard"

    user_message, follow_up_message = updated.messages
    assert (user_message.role, user_message.stage) == ('user', Stage.Q3_SPECIFIC_MOMENT)
    assert (follow_up_message.role, follow_up_message.stage) == ('assistant', Stage.FOLLOWUP)
    assert follow_up_message.content == "What did the room look like?"


def test_apply_advance_decision():
    conversation = conversation_at(Stage.FOLLOWUP, [('Q3_SPECIFIC_MOMENT', 'b')], 42)
    decision = TurnDecision(next_stage=Stage.Q4_DILEMMA, needs_follow_up=False, progress_percentage=56)

    updated = apply_decision(conversation, "The gym was silent.", decision)

    assert updated.current_stage == Stage.Q4_DILEMMA
    assert updated.needs_follow_up is False
    assert updated.progress_percentage == 56
    assert updated.answered_stages == ['Q3_SPECIFIC_MOMENT', 'FOLLOWUP']
    assert updated.follow_up_used is True


def test_zero_progress_keeps_previous_value():
    conversation = conversation_at(Stage.Q2_SELECTION, progress=28)
    decision = TurnDecision(next_stage=Stage.Q3_SPECIFIC_MOMENT, needs_follow_up=False, progress_percentage=0)

    assert apply_decision(conversation, "answer", decision).progress_percentage == 28


def test_apply_decision_on_complete_raises():
    conversation = conversation_at(Stage.COMPLETE)
    decision = TurnDecision(next_stage=Stage.COMPLETE, needs_follow_up=False, progress_percentage=100)

    with pytest.raises(ValueError):
        apply_decision(conversation, "late answer", decision)


def test_apply_decision_leaves_input_untouched():
    conversation = conversation_at(Stage.Q2_SELECTION)
    decision = TurnDecision(next_stage=Stage.Q3_SPECIFIC_MOMENT, needs_follow_up=False, progress_percentage=42)

    apply_decision(conversation, "answer", decision)

    assert conversation.messages == ()
    assert conversation.responses == ()


def test_go_back_steps_to_previous_question():
    conversation = conversation_at(Stage.Q4_DILEMMA, [('Q3_SPECIFIC_MOMENT', 'b')])
    conversation = conversation.with_message(Message(role='user', content='b', stage=Stage.Q3_SPECIFIC_MOMENT))

    updated = go_back(conversation)

    assert updated.current_stage == Stage.Q3_SPECIFIC_MOMENT
    assert updated.messages == conversation.messages
    assert updated.responses == conversation.responses


@pytest.mark.parametrize("stage", [Stage.Q1_EXPLORATION, Stage.FOLLOWUP, Stage.COMPLETE])
def test_go_back_noop_at_boundaries(stage):
    conversation = conversation_at(stage)
    assert go_back(conversation) is conversation


def test_detour_after_stepping_back_returns_past_reanswered_stage():
    answers = [('Q1_EXPLORATION', 'a'), ('Q2_SELECTION', 'b'), ('Q3_SPECIFIC_MOMENT', 'c'), ('Q4_DILEMMA', 'd')]
    conversation = go_back(go_back(conversation_at(Stage.Q5_ACTION, answers, 70)))
    assert conversation.current_stage == Stage.Q3_SPECIFIC_MOMENT

    detour = TurnDecision(
        next_stage=Stage.FOLLOWUP,
        needs_follow_up=True,
        progress_percentage=42,
        follow_up_question="Which moment exactly?",
    )
    conversation = apply_decision(conversation, "c, told differently", detour)

    assert conversation.answered_stages[-1] == 'Q3_SPECIFIC_MOMENT'
    assert resolve_real_stage(conversation) == Stage.Q3_SPECIFIC_MOMENT
    assert next_stage_after(resolve_real_stage(conversation)) == Stage.Q4_DILEMMA
