"""
Stage sequencer - pure stage arithmetic

Responsibilities:
- Resolve the real stage behind a FOLLOWUP detour
- Compute the stage after a given stage
- Compute the stage before a given stage (go-back support)
- Report progress for any stage

Design principles:
- Never raise on bad input; fall back to a valid stage instead
- Independent of LLM content

State machine:
    Q1 -> Q2 -> ... -> Q7 -> COMPLETE     (answer accepted)
    Qk -> FOLLOWUP                        (gate allows detour, k != 1)
    FOLLOWUP -> Q(k+1)                    (any follow-up answer)
    COMPLETE is terminal.
"""

import logging

from brainstorm.contracts import ConversationState, Stage, StageLike, coerce_stage, stage_value
from brainstorm.core.stage_catalog import ORDERED_STAGES, progress_weight

logger = logging.getLogger(__name__)

_ORDERED_VALUES = [stage.value for stage in ORDERED_STAGES]

# Stages a go-back can land on (COMPLETE is terminal, FOLLOWUP is a detour)
_QUESTION_VALUES = [value for value in _ORDERED_VALUES if value != Stage.COMPLETE.value]

# Keys that never count as "where the student actually was"
_NON_REAL_KEYS = {Stage.FOLLOWUP.value, Stage.COMPLETE.value}


def resolve_real_stage(conversation: ConversationState) -> StageLike:
    """
    Return the stage the conversation is really at.

    Outside a detour this is current_stage. Inside FOLLOWUP it is the
    most recently answered stage other than FOLLOWUP/COMPLETE, or
    Q1_EXPLORATION if no such answer exists.

    Args:
        conversation: Conversation snapshot

    Returns:
        Stage (or the raw stage string if it is not a known stage)
    """
    if stage_value(conversation.current_stage) != Stage.FOLLOWUP.value:
        return conversation.current_stage

    real_stages = [
        stage for stage in conversation.answered_stages
        if stage not in _NON_REAL_KEYS
    ]

    if not real_stages:
        logger.warning("FOLLOWUP with no recorded real stage, resolving to Q1_EXPLORATION")
        return Stage.Q1_EXPLORATION

    return coerce_stage(real_stages[-1])


def next_stage_after(stage: StageLike) -> Stage:
    """
    Stage that follows `stage` in the ordered progression.

    - Unknown stage (including FOLLOWUP) -> Q2_SELECTION
    - Q7_FUTURE -> COMPLETE
    - COMPLETE -> COMPLETE (terminal; callers should stop before this)

    Args:
        stage: Current real stage

    Returns:
        Stage
    """
    value = stage_value(stage)

    if value not in _ORDERED_VALUES:
        logger.warning(f"Unknown stage '{value}', defaulting next stage to Q2_SELECTION")
        return Stage.Q2_SELECTION

    index = _ORDERED_VALUES.index(value)
    if index < len(_ORDERED_VALUES) - 1:
        return ORDERED_STAGES[index + 1]

    return Stage.COMPLETE


def previous_stage(stage: StageLike) -> StageLike:
    """
    Stage before `stage` among the question stages.

    Q1, FOLLOWUP, COMPLETE and unknown stages are returned unchanged.
    """
    value = stage_value(stage)
    if value not in _QUESTION_VALUES:
        return stage

    index = _QUESTION_VALUES.index(value)
    if index == 0:
        return stage

    return ORDERED_STAGES[index - 1]


def progress_for(stage: StageLike) -> int:
    """Progress percentage for a stage (0 for unknown stages)."""
    return progress_weight(stage)
