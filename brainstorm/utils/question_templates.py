"""
Static question templates

Used when question or follow-up generation fails, so a chat turn can
always return some question text.

Template Text:
- STAGE_TEMPLATES maps stage name to question text
- Q1 contains a {prompt_text} placeholder filled with the essay prompt
- Unknown stages fall back to the Q1 template
"""

from typing import Dict, Optional

from brainstorm.contracts import Stage, StageLike, stage_value


GENERIC_FOLLOW_UP = "Can you tell me more about that? I'd love to hear more specific details."

COMPLETION_MESSAGE = (
    "That's the last question. Thank you for sharing your story - "
    "your outline is ready to be generated."
)

DEFAULT_PROMPT_TEXT = "your chosen prompt"

STAGE_TEMPLATES: Dict[str, str] = {
    Stage.Q1_EXPLORATION.value: (
        'Let\'s start with the prompt: "{prompt_text}"\n\n'
        "Think about this prompt for a moment. What comes to mind? What experiences, "
        "moments, or stories feel most meaningful to you right now?"
    ),
    Stage.Q2_SELECTION.value: (
        "Great start. Now, from what you've shared, which specific experience or moment "
        "feels most important to you? Why does this one stand out?"
    ),
    Stage.Q3_SPECIFIC_MOMENT.value: (
        "Let's zoom in. Can you describe a specific moment within that experience? What "
        "did you see, hear, or feel? What was happening around you?"
    ),
    Stage.Q4_DILEMMA.value: (
        "What was the challenge or dilemma you faced in that moment? What made it "
        "difficult? What were you struggling with?"
    ),
    Stage.Q5_ACTION.value: (
        "What did you do? What action did you take, or what choice did you make? How "
        "did you respond?"
    ),
    Stage.Q6_DISCOVERY.value: (
        "What did you learn from this experience? What did you discover about yourself, "
        "others, or the world?"
    ),
    Stage.Q7_FUTURE.value: (
        "How has this experience shaped who you are today? What does it mean for your future?"
    ),
    Stage.FOLLOWUP.value: GENERIC_FOLLOW_UP,
}


def render_stage_template(stage: StageLike, prompt_text: Optional[str] = None) -> str:
    """
    Render the fallback question for a stage.

    Args:
        stage: Stage to render (unknown stages use the Q1 template)
        prompt_text: Full essay prompt text for the Q1 placeholder

    Returns:
        str: Question text
    """
    value = stage_value(stage)
    if value == Stage.COMPLETE.value:
        return COMPLETION_MESSAGE

    template = STAGE_TEMPLATES.get(value, STAGE_TEMPLATES[Stage.Q1_EXPLORATION.value])
    return template.format(prompt_text=prompt_text or DEFAULT_PROMPT_TEXT)
