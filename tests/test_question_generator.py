"""
Unit tests for the LLM-backed question generator
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from brainstorm.contracts import ConversationState, Message, Stage
from brainstorm.core.question_generator import QuestionGenerator
from brainstorm.errors import GenerationError
from brainstorm.utils.prompt_builder import FOLLOW_UP_ISSUES


class MockHFClient:
    """Mock HuggingFace client returning canned text"""

    def __init__(self, output="  What experiences come to mind?  ", error=None):
        self.output = output
        self.error = error
        self.calls = []

    def generate(self, spec, max_tokens=300, temperature=0.7):
        self.calls.append({'spec': spec, 'max_tokens': max_tokens, 'temperature': temperature})
        if self.error is not None:
            raise self.error
        return self.output


def test_generate_question_strips_output():
    client = MockHFClient()
    generator = QuestionGenerator(client)

    question = generator.generate_question(ConversationState.new('challenge'))

    assert question == "What experiences come to mind?"
    assert client.calls[0]['max_tokens'] == 300


def test_question_prompt_uses_history():
    client = MockHFClient()
    conversation = ConversationState(
        prompt_id='identity',
        current_stage=Stage.Q2_SELECTION,
        messages=(
            Message(role='assistant', content='What comes to mind?', stage=Stage.Q1_EXPLORATION),
            Message(role='user', content='Cooking with my grandmother', stage=Stage.Q1_EXPLORATION),
        ),
        responses=(('Q1_EXPLORATION', 'Cooking with my grandmother'),),
    )

    QuestionGenerator(client).generate_question(conversation)

    system = client.calls[0]['spec'].system
    assert "STUDENT: Cooking with my grandmother" in system
    assert "Student's response to Q1_EXPLORATION: Cooking with my grandmother" in system


def test_opening_question_without_history():
    client = MockHFClient()
    QuestionGenerator(client).generate_question(ConversationState.new('identity'))
    assert "Background, Identity, Interest, or Talent" in client.calls[0]['spec'].system


@pytest.mark.parametrize("output", ["", "   \n  ", None])
def test_empty_output_raises(output):
    generator = QuestionGenerator(MockHFClient(output=output))
    with pytest.raises(GenerationError):
        generator.generate_question(ConversationState.new('belief'))


def test_client_failure_raises_generation_error():
    generator = QuestionGenerator(MockHFClient(error=RuntimeError("OOM")))
    with pytest.raises(GenerationError):
        generator.generate_question(ConversationState.new('belief'))


@pytest.mark.parametrize("stage", [Stage.FOLLOWUP, Stage.COMPLETE])
def test_stages_without_question_prompt_raise(stage):
    client = MockHFClient()
    conversation = ConversationState(prompt_id='choice', current_stage=stage)

    with pytest.raises(GenerationError):
        QuestionGenerator(client).generate_question(conversation)

    assert client.calls == []


def test_follow_up_prompt_targets_issue():
    client = MockHFClient(output="Which moment do you mean?")
    generator = QuestionGenerator(client)

    text = generator.generate_follow_up(Stage.Q3_SPECIFIC_MOMENT, "It was intense", 'too_abstract')

    assert text == "Which moment do you mean?"
    spec = client.calls[0]['spec']
    assert FOLLOW_UP_ISSUES['too_abstract'] in spec.system
    assert "It was intense" in spec.user
    assert client.calls[0]['max_tokens'] == 200


def test_requires_generate_method():
    with pytest.raises(TypeError):
        QuestionGenerator(object())
