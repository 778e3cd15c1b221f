"""
State updates - merge orchestrator results into a new ConversationState

The orchestrator only decides; these functions build the next snapshot.
All of them return a new ConversationState and leave the input untouched.
"""

import logging
from dataclasses import replace

from brainstorm.contracts import (
    ROLE_ASSISTANT,
    ROLE_USER,
    ConversationState,
    Message,
    Stage,
    StageLike,
    stage_value,
)
from brainstorm.core.stage_sequencer import previous_stage
from brainstorm.results import TurnDecision
from brainstorm.utils.helpers import generate_message_id, utc_now_iso

logger = logging.getLogger(__name__)


def _message(role: str, content: str, stage: StageLike) -> Message:
    return Message(
        role=role,
        content=content,
        stage=stage,
        id=generate_message_id(),
        timestamp=utc_now_iso(),
    )


def record_question(conversation: ConversationState, question: str,
                    stage: StageLike) -> ConversationState:
    """
    Add a shown question to the history.

    Skipped when an assistant message with the same text already exists
    for that stage, so re-fetching a cached question is a no-op.
    """
    if not question:
        return conversation

    key = stage_value(stage)
    for message in conversation.messages:
        if (message.role == ROLE_ASSISTANT
                and stage_value(message.stage) == key
                and message.content.strip() == question.strip()):
            return conversation

    return conversation.with_message(_message(ROLE_ASSISTANT, question, stage))


def apply_decision(conversation: ConversationState, answer_text: str,
                   decision: TurnDecision) -> ConversationState:
    """
    Merge an answered turn into the conversation.

    - Appends the student's message (tagged with the stage it answered)
    - Records the answer under the current stage
    - Follow-up path: moves to FOLLOWUP and appends the follow-up question
    - Advance path: moves to decision.next_stage
    - Progress keeps its previous value when the decision reports 0

    Args:
        conversation: Snapshot the decision was computed from
        answer_text: The submitted answer
        decision: Orchestrator output for this answer

    Returns:
        ConversationState: Updated snapshot

    Raises:
        ValueError: If the conversation is already COMPLETE
    """
    current = conversation.current_stage
    if stage_value(current) == Stage.COMPLETE.value:
        raise ValueError("Cannot record an answer on a completed conversation")

    updated = conversation.with_message(_message(ROLE_USER, answer_text, current))
    updated = updated.with_response(current, answer_text)

    progress = decision.progress_percentage or conversation.progress_percentage

    if decision.needs_follow_up and decision.follow_up_question:
        updated = updated.with_message(
            _message(ROLE_ASSISTANT, decision.follow_up_question, Stage.FOLLOWUP)
        )
        return replace(
            updated,
            current_stage=Stage.FOLLOWUP,
            needs_follow_up=True,
            progress_percentage=progress,
        )

    return replace(
        updated,
        current_stage=decision.next_stage,
        needs_follow_up=False,
        progress_percentage=progress,
    )


def go_back(conversation: ConversationState) -> ConversationState:
    """
    Step back to the previous question stage.

    Q1, FOLLOWUP and COMPLETE stay where they are. Messages and recorded
    answers are kept.
    """
    target = previous_stage(conversation.current_stage)
    if stage_value(target) == stage_value(conversation.current_stage):
        logger.debug(f"go_back ignored at {stage_value(target)}")
        return conversation

    return replace(conversation, current_stage=target)
