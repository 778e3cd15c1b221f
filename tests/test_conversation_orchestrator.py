"""
Unit tests for the Conversation Orchestrator

Tests turn logic with mocked classifier and question generator
"""

import sys
import os
import time
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from brainstorm.contracts import (
    CATEGORY_NEEDS_DEPTH,
    CATEGORY_NEEDS_EXPANSION,
    CATEGORY_OFF_TRACK,
    CATEGORY_SUFFICIENT,
    Classification,
    ConversationState,
    Message,
    Stage,
)
from brainstorm.core.conversation_orchestrator import ConversationOrchestrator
from brainstorm.core.state_updates import apply_decision, record_question
from brainstorm.errors import ClassificationError, GenerationError, InvalidPromptError
from brainstorm.results import QuestionResult, TurnDecision
from brainstorm.utils.prompts import get_prompt_by_id
from brainstorm.utils.question_templates import COMPLETION_MESSAGE, GENERIC_FOLLOW_UP


# ========================
# Mock Modules
# ========================

class MockClassifier:
    """Mock classifier returning a fixed classification or raising"""

    def __init__(self, classification=None, error=None):
        self.classification = classification
        self.error = error
        self.calls = []

    def classify(self, stage, answer_text):
        self.calls.append((stage, answer_text))
        if self.error is not None:
            raise self.error
        return self.classification


class SlowClassifier:
    """Classifier that outlives any short timeout"""

    def __init__(self, delay=0.5):
        self.delay = delay

    def classify(self, stage, answer_text):
        time.sleep(self.delay)
        return Classification(needs_follow_up=False, category=CATEGORY_SUFFICIENT)


class MockQuestionGenerator:
    """Mock generator with canned questions"""

    def __init__(self, question="What stands out most?", follow_up="What exactly happened?",
                 fail_question=False, fail_follow_up=False):
        self.question = question
        self.follow_up = follow_up
        self.fail_question = fail_question
        self.fail_follow_up = fail_follow_up
        self.question_calls = []
        self.follow_up_calls = []

    def generate_question(self, conversation):
        self.question_calls.append(conversation.current_stage)
        if self.fail_question:
            raise GenerationError("model offline")
        return self.question

    def generate_follow_up(self, stage, answer_text, issue):
        self.follow_up_calls.append((stage, answer_text, issue))
        if self.fail_follow_up:
            raise GenerationError("model offline")
        return self.follow_up


# ========================
# Test Utilities
# ========================

def make_conversation(stage, responses=(), messages=(), prompt_id='challenge'):
    return ConversationState(
        prompt_id=prompt_id,
        current_stage=stage,
        messages=tuple(messages),
        responses=tuple(responses),
    )


def make_orchestrator(classifier=None, generator=None, llm_timeout=None):
    classifier = classifier or MockClassifier(
        Classification(needs_follow_up=False, category=CATEGORY_SUFFICIENT)
    )
    generator = generator or MockQuestionGenerator()
    return ConversationOrchestrator(generator, classifier, llm_timeout=llm_timeout), classifier, generator


# ========================
# Construction
# ========================

def test_rejects_generator_without_methods():
    class NoFollowUp:
        def generate_question(self, conversation):
            return "?"

    with pytest.raises(TypeError):
        ConversationOrchestrator(NoFollowUp(), MockClassifier())


def test_rejects_classifier_without_classify():
    with pytest.raises(TypeError):
        ConversationOrchestrator(MockQuestionGenerator(), object())


def test_rejects_non_positive_timeout():
    with pytest.raises(ValueError):
        ConversationOrchestrator(MockQuestionGenerator(), MockClassifier(), llm_timeout=0)


# ========================
# Prompt validation
# ========================

def test_invalid_prompt_raises_before_any_call():
    orchestrator, classifier, generator = make_orchestrator()
    conversation = make_conversation(Stage.Q3_SPECIFIC_MOMENT, prompt_id='not-a-prompt')

    with pytest.raises(InvalidPromptError) as exc_info:
        orchestrator.handle_turn(conversation, "some answer")

    assert exc_info.value.prompt_id == 'not-a-prompt'
    assert classifier.calls == []
    assert generator.question_calls == []


# ========================
# Case A: question for the current stage
# ========================

def test_question_generated_when_not_cached():
    orchestrator, _, generator = make_orchestrator()
    result = orchestrator.handle_turn(make_conversation(Stage.Q2_SELECTION))

    assert isinstance(result, QuestionResult)
    assert result.question == "What stands out most?"
    assert result.stage == Stage.Q2_SELECTION
    assert result.source == "generated"
    assert generator.question_calls == [Stage.Q2_SELECTION]


def test_cached_question_reused():
    orchestrator, _, generator = make_orchestrator()
    conversation = make_conversation(Stage.Q2_SELECTION, messages=[
        Message(role='assistant', content='Earlier Q1 question', stage=Stage.Q1_EXPLORATION),
        Message(role='assistant', content='Which one matters most?', stage=Stage.Q2_SELECTION),
    ])

    result = orchestrator.handle_turn(conversation)

    assert result.question == 'Which one matters most?'
    assert result.source == 'cache'
    assert generator.question_calls == []


def test_generator_failure_falls_back_to_template():
    generator = MockQuestionGenerator(fail_question=True)
    orchestrator, _, _ = make_orchestrator(generator=generator)

    result = orchestrator.handle_turn(make_conversation(Stage.Q1_EXPLORATION))

    assert result.source == 'template'
    assert get_prompt_by_id('challenge').full_text in result.question


def test_unknown_stage_uses_opening_template():
    generator = MockQuestionGenerator(fail_question=True)
    orchestrator, _, _ = make_orchestrator(generator=generator)

    result = orchestrator.handle_turn(make_conversation('LEGACY_STAGE'))

    assert result.stage == 'LEGACY_STAGE'
    assert get_prompt_by_id('challenge').full_text in result.question


def test_complete_returns_closing_message():
    orchestrator, _, generator = make_orchestrator()
    result = orchestrator.handle_turn(make_conversation(Stage.COMPLETE))

    assert result.question == COMPLETION_MESSAGE
    assert generator.question_calls == []


def test_followup_without_recorded_question_uses_generic_text():
    orchestrator, _, generator = make_orchestrator()
    result = orchestrator.handle_turn(make_conversation(Stage.FOLLOWUP, [('Q3_SPECIFIC_MOMENT', 'x')]))

    assert result.question == GENERIC_FOLLOW_UP
    assert generator.question_calls == []


def test_empty_answer_is_treated_as_question_request():
    orchestrator, classifier, _ = make_orchestrator()
    result = orchestrator.handle_turn(make_conversation(Stage.Q2_SELECTION), "")

    assert isinstance(result, QuestionResult)
    assert classifier.calls == []


# ========================
# Case B: end-to-end scenarios
# ========================

def test_short_answer_with_classifier_down_takes_detour():
    """5-char answer at Q3, classifier unavailable -> FOLLOWUP at 42%"""
    classifier = MockClassifier(error=ClassificationError("unparseable"))
    orchestrator, _, generator = make_orchestrator(classifier=classifier)
    conversation = make_conversation(
        Stage.Q3_SPECIFIC_MOMENT,
        [('Q1_EXPLORATION', 'a'), ('Q2_SELECTION', 'b')],
    )

    decision = orchestrator.handle_turn(conversation, "short")

    assert isinstance(decision, TurnDecision)
    assert decision.next_stage == Stage.FOLLOWUP
    assert decision.needs_follow_up is True
    assert decision.progress_percentage == 42
    assert decision.follow_up_question == "What exactly happened?"
    assert decision.classification.category == CATEGORY_NEEDS_EXPANSION
    assert generator.follow_up_calls == [(Stage.Q3_SPECIFIC_MOMENT, "short", 'too_short')]
    assert 'classification_fallback' in decision.debug

    print("✓ Fallback detour scenario passed")


def test_spent_follow_up_advances_instead():
    """Same as above, but FOLLOWUP already recorded -> Q4 at 56%"""
    classifier = MockClassifier(error=ClassificationError("unparseable"))
    orchestrator, _, generator = make_orchestrator(classifier=classifier)
    conversation = make_conversation(
        Stage.Q3_SPECIFIC_MOMENT,
        [('Q1_EXPLORATION', 'a'), ('Q2_SELECTION', 'b'), ('FOLLOWUP', 'c')],
    )

    decision = orchestrator.handle_turn(conversation, "short")

    assert decision.to_json() == {
        'nextStage': 'Q4_DILEMMA',
        'needsFollowUp': False,
        'progressPercentage': 56,
    }
    assert generator.follow_up_calls == []

    print("✓ Spent follow-up scenario passed")


def test_opening_stage_never_detours():
    """OFF_TRACK at Q1 still advances to Q2 at 28%"""
    classifier = MockClassifier(Classification(needs_follow_up=True, category=CATEGORY_OFF_TRACK))
    orchestrator, _, generator = make_orchestrator(classifier=classifier)

    decision = orchestrator.handle_turn(make_conversation(Stage.Q1_EXPLORATION), "I don't know")

    assert decision.next_stage == Stage.Q2_SELECTION
    assert decision.needs_follow_up is False
    assert decision.progress_percentage == 28
    assert generator.follow_up_calls == []

    print("✓ Q1 exemption scenario passed")


def test_followup_answer_returns_to_next_real_stage():
    """At FOLLOWUP after Q5 -> Q6 at 85%, whatever the answer"""
    classifier = MockClassifier(Classification(needs_follow_up=True, category=CATEGORY_NEEDS_DEPTH))
    orchestrator, _, _ = make_orchestrator(classifier=classifier)
    conversation = make_conversation(Stage.FOLLOWUP, [('Q5_ACTION', 'x'), ('FOLLOWUP', 'y')])

    decision = orchestrator.handle_turn(conversation, "ok")

    assert decision.next_stage == Stage.Q6_DISCOVERY
    assert decision.needs_follow_up is False
    assert decision.progress_percentage == 85

    print("✓ FOLLOWUP resolution scenario passed")


# ========================
# Case B: fallbacks and edge cases
# ========================

def test_long_answer_with_classifier_down_advances():
    classifier = MockClassifier(error=RuntimeError("connection refused"))
    orchestrator, _, _ = make_orchestrator(classifier=classifier)

    decision = orchestrator.handle_turn(
        make_conversation(Stage.Q4_DILEMMA, [('Q3_SPECIFIC_MOMENT', 'b')]),
        "I had to choose between the team and my grades that week.",
    )

    assert decision.next_stage == Stage.Q5_ACTION
    assert decision.progress_percentage == 70


def test_fallback_threshold_uses_trimmed_length():
    short = ConversationOrchestrator.fallback_classification("  " + "x" * 19 + "     ")
    assert short.needs_follow_up is True

    exactly_twenty = ConversationOrchestrator.fallback_classification("  " + "x" * 20 + "  ")
    assert exactly_twenty.needs_follow_up is False
    assert exactly_twenty.category == CATEGORY_NEEDS_EXPANSION


def test_follow_up_generation_failure_uses_generic_text():
    classifier = MockClassifier(Classification(needs_follow_up=True, category=CATEGORY_NEEDS_DEPTH))
    generator = MockQuestionGenerator(fail_follow_up=True)
    orchestrator, _, _ = make_orchestrator(classifier=classifier, generator=generator)

    decision = orchestrator.handle_turn(make_conversation(Stage.Q6_DISCOVERY), "I learned a lot.")

    assert decision.next_stage == Stage.FOLLOWUP
    assert decision.follow_up_question == GENERIC_FOLLOW_UP
    assert decision.progress_percentage == 85
    assert generator.follow_up_calls[0][2] == 'too_abstract'


def test_classifier_timeout_treated_as_failure():
    orchestrator, _, _ = make_orchestrator(classifier=SlowClassifier(delay=0.5), llm_timeout=0.05)

    decision = orchestrator.handle_turn(make_conversation(Stage.Q2_SELECTION), "tiny")

    assert decision.next_stage == Stage.FOLLOWUP
    assert decision.debug['classification_fallback'].startswith('TimeoutError')


def test_classifier_returning_wrong_type_falls_back():
    classifier = MockClassifier(classification={'needsFollowUp': False, 'category': 'SUFFICIENT'})
    orchestrator, _, _ = make_orchestrator(classifier=classifier)

    decision = orchestrator.handle_turn(make_conversation(Stage.Q2_SELECTION), "meh")

    assert decision.next_stage == Stage.FOLLOWUP


def test_answer_after_complete_stays_complete():
    orchestrator, classifier, _ = make_orchestrator()
    decision = orchestrator.handle_turn(make_conversation(Stage.COMPLETE), "one more thing")

    assert decision.next_stage == Stage.COMPLETE
    assert decision.progress_percentage == 100
    assert classifier.calls == []


def test_unknown_stage_advances_to_q2():
    orchestrator, _, _ = make_orchestrator()
    decision = orchestrator.handle_turn(make_conversation('CORRUPTED'), "an answer of decent length")

    assert decision.next_stage == Stage.Q2_SELECTION
    assert decision.progress_percentage == 28


def test_input_conversation_not_modified():
    classifier = MockClassifier(Classification(needs_follow_up=True, category=CATEGORY_NEEDS_DEPTH))
    orchestrator, _, _ = make_orchestrator(classifier=classifier)
    conversation = make_conversation(Stage.Q3_SPECIFIC_MOMENT, [('Q2_SELECTION', 'b')])
    before = conversation.to_json()

    orchestrator.handle_turn(conversation, "x")

    assert conversation.to_json() == before


# ========================
# Full conversation
# ========================

def test_full_conversation_with_single_detour():
    """Classifier always unhappy: exactly one detour, then straight to COMPLETE"""
    classifier = MockClassifier(Classification(needs_follow_up=True, category=CATEGORY_NEEDS_DEPTH))
    generator = MockQuestionGenerator(question="Next question?", follow_up="Tell me more?")
    orchestrator, _, _ = make_orchestrator(classifier=classifier, generator=generator)

    conversation = ConversationState.new('identity')
    visited = []

    for _ in range(20):
        if conversation.current_stage == Stage.COMPLETE:
            break
        question = orchestrator.handle_turn(conversation)
        conversation = record_question(conversation, question.question, question.stage)
        visited.append(conversation.current_stage)

        decision = orchestrator.handle_turn(conversation, "an answer")
        conversation = apply_decision(conversation, "an answer", decision)

    assert conversation.current_stage == Stage.COMPLETE
    assert conversation.progress_percentage == 100
    assert visited == [
        Stage.Q1_EXPLORATION,
        Stage.Q2_SELECTION,
        Stage.FOLLOWUP,
        Stage.Q3_SPECIFIC_MOMENT,
        Stage.Q4_DILEMMA,
        Stage.Q5_ACTION,
        Stage.Q6_DISCOVERY,
        Stage.Q7_FUTURE,
    ]

    follow_up_messages = [
        message for message in conversation.messages
        if message.role == 'assistant' and message.stage == Stage.FOLLOWUP
    ]
    assert len(follow_up_messages) == 1
    assert conversation.follow_up_used is True

    print("✓ Full conversation test passed")
