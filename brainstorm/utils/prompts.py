"""
Common App essay prompt catalog

Closed set of prompts a conversation can be started with.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class EssayPrompt:
    """
    Attributes:
        id: Prompt identifier used in ConversationState.prompt_id
        title: Short display title
        full_text: Official prompt wording
        description: One-line summary
        best_for: Hint about which stories suit the prompt
    """
    id: str
    title: str
    full_text: str
    description: str
    best_for: str

    def to_json(self) -> Dict[str, str]:
        return {
            'id': self.id,
            'title': self.title,
            'fullText': self.full_text,
            'description': self.description,
            'bestFor': self.best_for,
        }


COMMON_APP_PROMPTS: List[EssayPrompt] = [
    EssayPrompt(
        id='identity',
        title='Background, Identity, Interest, or Talent',
        full_text=(
            'Some students have a background, identity, interest, or talent that is so '
            'meaningful they believe their application would be incomplete without it. '
            'If this sounds like you, then please share your story.'
        ),
        description='Share something central to who you are',
        best_for='Stories about who you are at your core: your culture, passions, or unique perspectives',
    ),
    EssayPrompt(
        id='challenge',
        title='Challenge, Setback, or Failure',
        full_text=(
            'The lessons we take from obstacles we encounter can be fundamental to later '
            'success. Recount a time when you faced a challenge, setback, or failure. How '
            'did it affect you, and what did you learn from the experience?'
        ),
        description='Describe overcoming a difficulty',
        best_for='Stories about overcoming difficulty, learning from mistakes, or personal growth',
    ),
    EssayPrompt(
        id='belief',
        title='Questioning or Challenging a Belief',
        full_text=(
            'Reflect on a time when you questioned or challenged a belief or idea. What '
            'prompted your thinking? What was the outcome?'
        ),
        description='Explore changing your perspective',
        best_for='Stories about intellectual curiosity, changing your mind, or standing up for what you believe',
    ),
    EssayPrompt(
        id='choice',
        title='Topic of Your Choice',
        full_text=(
            "Share an essay on any topic of your choice. It can be one you've already "
            "written, one that responds to a different prompt, or one of your own design."
        ),
        description='Write about anything meaningful to you',
        best_for="Unique stories that don't fit other prompts",
    ),
]

_PROMPTS_BY_ID = {prompt.id: prompt for prompt in COMMON_APP_PROMPTS}


def get_prompt_by_id(prompt_id: str) -> Optional[EssayPrompt]:
    """Look up a prompt, returning None for unknown ids."""
    return _PROMPTS_BY_ID.get(prompt_id)
