"""
Result types returned by the orchestrator and outline generator.

Each result knows how to render its own wire shape via to_json().
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from brainstorm.contracts import Classification, ConversationState, StageLike, Stage, stage_value


@dataclass(frozen=True)
class QuestionResult:
    """
    Question for the current stage (chat turn without an answer).

    Attributes:
        question: Question text to show the student
        stage: Stage the question belongs to
        source: 'cache', 'generated' or 'template' (diagnostic only)
    """
    question: str
    stage: StageLike
    source: str = "generated"

    def to_json(self) -> Dict[str, Any]:
        return {
            'question': self.question,
            'questionStage': stage_value(self.stage),
        }


@dataclass(frozen=True)
class TurnDecision:
    """
    Outcome of a chat turn with an answer.

    Follow-up path: next_stage is FOLLOWUP, needs_follow_up is True and
    follow_up_question carries the detour question. progress_percentage
    reflects the stage the detour was triggered from.

    Advance path: next_stage is the following real stage and
    progress_percentage is that stage's weight.

    Attributes:
        next_stage: Stage the caller should move to
        needs_follow_up: Whether the follow-up detour was taken
        progress_percentage: Progress value to report
        follow_up_question: Detour question (follow-up path only)
        classification: Classification used for the decision (diagnostic only)
        debug: Free-form diagnostic info (fallbacks applied, etc.)
    """
    next_stage: StageLike
    needs_follow_up: bool
    progress_percentage: int
    follow_up_question: Optional[str] = None
    classification: Optional[Classification] = None
    debug: Dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> Dict[str, Any]:
        data = {
            'nextStage': stage_value(self.next_stage),
            'needsFollowUp': self.needs_follow_up,
            'progressPercentage': self.progress_percentage,
        }
        if self.needs_follow_up:
            data['followUpQuestion'] = self.follow_up_question
        return data


@dataclass(frozen=True)
class OutlineSection:
    id: str
    title: str
    content: str
    can_refine: bool = True

    def to_json(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'content': self.content,
            'canRefine': self.can_refine,
        }

    @staticmethod
    def from_json(data: Dict[str, Any]) -> "OutlineSection":
        return OutlineSection(
            id=data['id'],
            title=data['title'],
            content=data['content'],
            can_refine=data.get('canRefine', True),
        )


@dataclass(frozen=True)
class Outline:
    """
    Essay outline assembled from a finished conversation.

    Attributes:
        sections: Ordered outline sections
        explanation: Why the outline is structured this way
        follow_up_prompt: Invitation to submit the finished essay
        generated_at: ISO-8601 UTC timestamp
        prompt_id: Essay prompt the outline answers
    """
    sections: Tuple[OutlineSection, ...]
    explanation: str
    follow_up_prompt: str
    generated_at: str
    prompt_id: str

    def to_json(self) -> Dict[str, Any]:
        return {
            'sections': [section.to_json() for section in self.sections],
            'explanation': self.explanation,
            'followUpPrompt': self.follow_up_prompt,
            'generatedAt': self.generated_at,
            'promptId': self.prompt_id,
        }

    @staticmethod
    def from_json(data: Dict[str, Any]) -> "Outline":
        return Outline(
            sections=tuple(OutlineSection.from_json(s) for s in data.get('sections', [])),
            explanation=data.get('explanation', ''),
            follow_up_prompt=data.get('followUpPrompt', ''),
            generated_at=data['generatedAt'],
            prompt_id=data['promptId'],
        )


@dataclass(frozen=True)
class BrainstormSession:
    """
    Persisted record for the active brainstorming session.

    Attributes:
        id: Session identifier
        conversation: Conversation snapshot of record
        created_at: ISO-8601 creation timestamp
        updated_at: ISO-8601 timestamp of the last save
        outline: Outline once the conversation is complete
    """
    id: str
    conversation: ConversationState
    created_at: str
    updated_at: str
    outline: Optional[Outline] = None

    @property
    def is_complete(self) -> bool:
        return self.conversation.current_stage == Stage.COMPLETE

    def to_json(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'conversation': self.conversation.to_json(),
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }
        if self.outline is not None:
            data['outline'] = self.outline.to_json()
        return data

    @staticmethod
    def from_json(data: Dict[str, Any]) -> "BrainstormSession":
        outline = data.get('outline')
        return BrainstormSession(
            id=data['id'],
            conversation=ConversationState.from_json(data['conversation']),
            created_at=data['createdAt'],
            updated_at=data['updatedAt'],
            outline=Outline.from_json(outline) if outline else None,
        )
