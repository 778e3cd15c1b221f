"""
Semantic contracts for the essay brainstorming system.

This module defines the data structures passed between the orchestrator,
the stage logic and the LLM-backed collaborators.

Design principles:
- Frozen dataclasses (immutable after creation)
- Validation only at the wire boundary (from_json)
- No dependencies on other modules except errors
- Ordered (stage, answer) pairs instead of relying on dict insertion order

Contents:
- Stage: Conversation stage enum (7 questions + FOLLOWUP detour + COMPLETE)
- Message: One chat message with the stage it was produced at
- ConversationState: Immutable conversation snapshot
- Classification: Result of response quality analysis

Usage:
    from brainstorm.contracts import Stage, ConversationState
"""

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from brainstorm.errors import MalformedConversationError


class Stage(str, Enum):
    """
    Conversation stages.

    The seven question stages run in order and end at COMPLETE.
    FOLLOWUP is a transient detour that is never part of the ordered
    progression; it always returns to the stage after the one that
    triggered it.
    """
    Q1_EXPLORATION = "Q1_EXPLORATION"
    Q2_SELECTION = "Q2_SELECTION"
    Q3_SPECIFIC_MOMENT = "Q3_SPECIFIC_MOMENT"
    Q4_DILEMMA = "Q4_DILEMMA"
    Q5_ACTION = "Q5_ACTION"
    Q6_DISCOVERY = "Q6_DISCOVERY"
    Q7_FUTURE = "Q7_FUTURE"
    FOLLOWUP = "FOLLOWUP"
    COMPLETE = "COMPLETE"


VALID_STAGES = {stage.value for stage in Stage}

# Stage values may arrive as raw strings from clients. Unknown strings are
# carried through unchanged so the sequencer's defaults can handle them.
StageLike = Union[Stage, str]


def stage_value(stage: StageLike) -> str:
    """Return the plain string value for a Stage or raw stage string."""
    if isinstance(stage, Stage):
        return stage.value
    return str(stage)


def coerce_stage(value: StageLike) -> StageLike:
    """Convert a known stage string to Stage, pass unknown strings through."""
    if isinstance(value, Stage):
        return value
    if value in VALID_STAGES:
        return Stage(value)
    return value


# Response quality categories returned by the classifier
CATEGORY_SUFFICIENT = "SUFFICIENT"
CATEGORY_NEEDS_SPECIFICITY = "NEEDS_SPECIFICITY"
CATEGORY_NEEDS_DEPTH = "NEEDS_DEPTH"
CATEGORY_NEEDS_EXPANSION = "NEEDS_EXPANSION"
CATEGORY_OFF_TRACK = "OFF_TRACK"

VALID_CATEGORIES = {
    CATEGORY_SUFFICIENT,
    CATEGORY_NEEDS_SPECIFICITY,
    CATEGORY_NEEDS_DEPTH,
    CATEGORY_NEEDS_EXPANSION,
    CATEGORY_OFF_TRACK,
}

# Follow-up issue tags handed to the follow-up generator
ISSUE_TOO_VAGUE = "too_vague"
ISSUE_TOO_ABSTRACT = "too_abstract"
ISSUE_TOO_SHORT = "too_short"
ISSUE_MISSED_QUESTION = "missed_question"

ROLE_ASSISTANT = "assistant"
ROLE_USER = "user"
VALID_ROLES = {ROLE_ASSISTANT, ROLE_USER}


@dataclass(frozen=True)
class Message:
    """
    A single chat message.

    Attributes:
        role: 'assistant' or 'user'
        content: Message text
        stage: Stage the conversation was at when the message was produced
        id: Client-side message identifier (optional)
        timestamp: ISO-8601 timestamp string (optional)
    """
    role: str
    content: str
    stage: StageLike
    id: Optional[str] = None
    timestamp: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        data = {
            'role': self.role,
            'content': self.content,
            'questionStage': stage_value(self.stage),
        }
        if self.id is not None:
            data['id'] = self.id
        if self.timestamp is not None:
            data['timestamp'] = self.timestamp
        return data

    @staticmethod
    def from_json(data: Any) -> "Message":
        if not isinstance(data, dict):
            raise MalformedConversationError(
                f"message must be an object, got {type(data).__name__}"
            )

        role = data.get('role')
        if role not in VALID_ROLES:
            raise MalformedConversationError(f"message role must be one of {sorted(VALID_ROLES)}, got {role!r}")

        content = data.get('content')
        if not isinstance(content, str):
            raise MalformedConversationError("message content must be a string")

        stage = data.get('questionStage', data.get('stage', Stage.Q1_EXPLORATION.value))
        if not isinstance(stage, str):
            raise MalformedConversationError("message questionStage must be a string")

        timestamp = data.get('timestamp')
        return Message(
            role=role,
            content=content,
            stage=coerce_stage(stage),
            id=data.get('id'),
            timestamp=str(timestamp) if timestamp is not None else None,
        )


@dataclass(frozen=True)
class ConversationState:
    """
    Immutable snapshot of one brainstorming conversation.

    The wire format keeps answers in a `studentResponses` object keyed by
    stage name. Internally the answers are an ordered tuple of
    (stage, answer) pairs, so "which stage was answered last" and "has
    the follow-up been used" never depend on mapping order semantics.

    Attributes:
        prompt_id: Essay prompt identifier ('challenge', 'identity', ...)
        current_stage: Stage the conversation is positioned at
        messages: Append-only message history
        responses: Ordered (stage_name, answer) pairs, one per stage
        needs_follow_up: Cached result of the last gating decision
        progress_percentage: Last reported progress (0-100)
    """
    prompt_id: str
    current_stage: StageLike = Stage.Q1_EXPLORATION
    messages: Tuple[Message, ...] = ()
    responses: Tuple[Tuple[str, str], ...] = ()
    needs_follow_up: bool = False
    progress_percentage: int = 0

    @staticmethod
    def new(prompt_id: str) -> "ConversationState":
        """Create the initial state for a freshly selected prompt."""
        return ConversationState(prompt_id=prompt_id)

    @property
    def follow_up_used(self) -> bool:
        """True once a FOLLOWUP answer has been recorded in this conversation."""
        return any(stage == Stage.FOLLOWUP.value for stage, _ in self.responses)

    @property
    def answered_stages(self) -> List[str]:
        """Stage names with a recorded answer, in the order last answered."""
        return [stage for stage, _ in self.responses]

    @property
    def student_responses(self) -> Dict[str, str]:
        """Answers as an ordered dict (stage name -> answer)."""
        return dict(self.responses)

    def response_for(self, stage: StageLike) -> Optional[str]:
        key = stage_value(stage)
        for stage_name, answer in self.responses:
            if stage_name == key:
                return answer
        return None

    def with_response(self, stage: StageLike, answer: str) -> "ConversationState":
        """
        Return a copy with `answer` recorded for `stage`.

        The pairs stay in the order stages were last answered: a stage
        answered again (after stepping back) moves to the end, so the last
        pair is always where the student actually was.
        """
        key = stage_value(stage)
        kept = tuple(pair for pair in self.responses if pair[0] != key)
        return replace(self, responses=kept + ((key, answer),))

    def with_message(self, message: Message) -> "ConversationState":
        return replace(self, messages=self.messages + (message,))

    def assistant_message_for(self, stage: StageLike) -> Optional[Message]:
        """First assistant message produced at `stage`, if any."""
        key = stage_value(stage)
        for message in self.messages:
            if message.role == ROLE_ASSISTANT and stage_value(message.stage) == key:
                return message
        return None

    def to_json(self) -> Dict[str, Any]:
        """Serialize to the camelCase wire shape."""
        return {
            'promptId': self.prompt_id,
            'currentStage': stage_value(self.current_stage),
            'messages': [message.to_json() for message in self.messages],
            'studentResponses': self.student_responses,
            'needsFollowUp': self.needs_follow_up,
            'progressPercentage': self.progress_percentage,
        }

    @staticmethod
    def from_json(data: Any) -> "ConversationState":
        """
        Validate and deserialize a conversation payload.

        Args:
            data: Raw conversation dict from a request body or session file

        Returns:
            ConversationState

        Raises:
            MalformedConversationError: If the payload shape is invalid
        """
        if not isinstance(data, dict):
            raise MalformedConversationError(
                f"conversation must be an object, got {type(data).__name__}"
            )

        prompt_id = data.get('promptId')
        if not isinstance(prompt_id, str):
            raise MalformedConversationError("conversation.promptId must be a string")

        current_stage = data.get('currentStage', Stage.Q1_EXPLORATION.value)
        if not isinstance(current_stage, str):
            raise MalformedConversationError("conversation.currentStage must be a string")

        raw_messages = data.get('messages') or []
        if not isinstance(raw_messages, list):
            raise MalformedConversationError("conversation.messages must be a list")
        messages = tuple(Message.from_json(item) for item in raw_messages)

        raw_responses = data.get('studentResponses') or {}
        if not isinstance(raw_responses, dict):
            raise MalformedConversationError("conversation.studentResponses must be an object")
        for stage_name, answer in raw_responses.items():
            if not isinstance(answer, str):
                raise MalformedConversationError(
                    f"studentResponses[{stage_name!r}] must be a string"
                )

        progress = data.get('progressPercentage', 0)
        if isinstance(progress, bool) or not isinstance(progress, (int, float)):
            raise MalformedConversationError("conversation.progressPercentage must be a number")
        if not math.isfinite(progress):
            raise MalformedConversationError("conversation.progressPercentage must be finite")

        needs_follow_up = data.get('needsFollowUp', False)
        if not isinstance(needs_follow_up, bool):
            raise MalformedConversationError("conversation.needsFollowUp must be a boolean")

        return ConversationState(
            prompt_id=prompt_id,
            current_stage=coerce_stage(current_stage),
            messages=messages,
            responses=tuple((str(k), v) for k, v in raw_responses.items()),
            needs_follow_up=needs_follow_up,
            progress_percentage=int(progress),
        )


@dataclass(frozen=True)
class Classification:
    """
    Response quality judgment produced by a classifier.

    Consumed read-only by the follow-up gate and the orchestrator.

    Attributes:
        needs_follow_up: Whether the answer should trigger a follow-up
        category: One of VALID_CATEGORIES
        reasoning: Short explanation (diagnostic only)
    """
    needs_follow_up: bool
    category: str
    reasoning: str = ""

    def to_json(self) -> Dict[str, Any]:
        return {
            'needsFollowUp': self.needs_follow_up,
            'category': self.category,
            'reasoning': self.reasoning,
        }
