"""
Stage catalog - ordered stage progression and progress weights

Pure data. The ordered progression excludes FOLLOWUP, which is a detour
rather than a step.
"""

from typing import Dict, Tuple

from brainstorm.contracts import Stage, StageLike, stage_value


# Single source of truth for stage order
ORDERED_STAGES: Tuple[Stage, ...] = (
    Stage.Q1_EXPLORATION,
    Stage.Q2_SELECTION,
    Stage.Q3_SPECIFIC_MOMENT,
    Stage.Q4_DILEMMA,
    Stage.Q5_ACTION,
    Stage.Q6_DISCOVERY,
    Stage.Q7_FUTURE,
    Stage.COMPLETE,
)

# Display-only progress weights, not used for control flow
STAGE_PROGRESS: Dict[str, int] = {
    Stage.Q1_EXPLORATION.value: 14,
    Stage.Q2_SELECTION.value: 28,
    Stage.Q3_SPECIFIC_MOMENT.value: 42,
    Stage.Q4_DILEMMA.value: 56,
    Stage.Q5_ACTION.value: 70,
    Stage.Q6_DISCOVERY.value: 85,
    Stage.Q7_FUTURE.value: 100,
    Stage.FOLLOWUP.value: 50,
    Stage.COMPLETE.value: 100,
}


def progress_weight(stage: StageLike) -> int:
    """
    Progress percentage for a stage.

    Total function: unknown stage names return 0 instead of raising.

    Args:
        stage: Stage enum member or raw stage string

    Returns:
        int: 0-100
    """
    return STAGE_PROGRESS.get(stage_value(stage), 0)
