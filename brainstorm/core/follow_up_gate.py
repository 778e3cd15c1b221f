"""
Follow-up gate - decides whether an answer may take the follow-up detour

Rules:
- Only one follow-up per conversation (a recorded FOLLOWUP answer spends it)
- No follow-up from FOLLOWUP (no nested detours) or COMPLETE (terminal)
- No follow-up from Q1_EXPLORATION; broad opening answers are accepted as-is
- Otherwise follow the classifier's needs_follow_up flag

Pure predicates, no side effects.
"""

from typing import Dict

from brainstorm.contracts import (
    CATEGORY_NEEDS_DEPTH,
    CATEGORY_NEEDS_EXPANSION,
    CATEGORY_NEEDS_SPECIFICITY,
    CATEGORY_OFF_TRACK,
    ISSUE_MISSED_QUESTION,
    ISSUE_TOO_ABSTRACT,
    ISSUE_TOO_SHORT,
    ISSUE_TOO_VAGUE,
    Classification,
    ConversationState,
    Stage,
    stage_value,
)

NO_FOLLOW_UP_STAGES = {
    Stage.FOLLOWUP.value,
    Stage.COMPLETE.value,
    Stage.Q1_EXPLORATION.value,
}

CATEGORY_TO_ISSUE: Dict[str, str] = {
    CATEGORY_NEEDS_SPECIFICITY: ISSUE_TOO_VAGUE,
    CATEGORY_NEEDS_DEPTH: ISSUE_TOO_ABSTRACT,
    CATEGORY_NEEDS_EXPANSION: ISSUE_TOO_SHORT,
    CATEGORY_OFF_TRACK: ISSUE_MISSED_QUESTION,
}

DEFAULT_ISSUE = ISSUE_TOO_VAGUE


def can_follow_up(conversation: ConversationState, classification: Classification) -> bool:
    """
    Decide whether this submission may take the one-time follow-up detour.

    Args:
        conversation: Snapshot the answer was submitted against
        classification: Quality judgment for the answer

    Returns:
        bool: True if the detour is allowed
    """
    if not classification.needs_follow_up:
        return False

    if conversation.follow_up_used:
        return False

    if stage_value(conversation.current_stage) in NO_FOLLOW_UP_STAGES:
        return False

    return True


def map_category_to_issue(category: str) -> str:
    """Map a classification category to a follow-up issue tag (unknown -> too_vague)."""
    return CATEGORY_TO_ISSUE.get(category, DEFAULT_ISSUE)
