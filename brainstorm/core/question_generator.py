"""
Question Generator - LLM-written stage questions and follow-ups

Responsibilities:
- Generate the question for a conversation's current stage
- Generate the adaptive follow-up question for a weak answer

Raises GenerationError when the LLM fails or returns nothing; the
orchestrator falls back to static templates.
"""

import logging

from brainstorm.contracts import ConversationState, StageLike, stage_value
from brainstorm.errors import GenerationError
from brainstorm.utils.prompt_builder import (
    PromptBuildError,
    build_follow_up_prompt,
    build_stage_prompt,
)

logger = logging.getLogger(__name__)


class QuestionGenerator:
    """Generate brainstorming questions with an LLM"""

    def __init__(self, llm_client, temperature: float = 0.7,
                 question_max_tokens: int = 300, follow_up_max_tokens: int = 200) -> None:
        """
        Args:
            llm_client: Client with callable generate(spec, max_tokens, temperature)
            temperature: Sampling temperature
            question_max_tokens: Token limit for stage questions
            follow_up_max_tokens: Token limit for follow-up questions

        Raises:
            TypeError: If llm_client lacks generate()
        """
        if not callable(getattr(llm_client, 'generate', None)):
            raise TypeError("llm_client must have callable generate() method")

        self.llm_client = llm_client
        self.temperature = temperature
        self.question_max_tokens = question_max_tokens
        self.follow_up_max_tokens = follow_up_max_tokens

        logger.info("Question Generator initialized")

    def _run(self, spec, max_tokens: int, label: str) -> str:
        try:
            text = self.llm_client.generate(
                spec,
                max_tokens=max_tokens,
                temperature=self.temperature
            )
        except Exception as e:
            logger.error(f"[{label}] Generation failed: {type(e).__name__} - {e}")
            raise GenerationError(f"generation failed: {e}") from e

        if not isinstance(text, str) or not text.strip():
            raise GenerationError(f"[{label}] empty generation")

        return text.strip()

    def generate_question(self, conversation: ConversationState) -> str:
        """
        Generate the question for conversation.current_stage.

        Raises:
            GenerationError: LLM failure, empty output, or a stage with no question
        """
        try:
            spec = build_stage_prompt(conversation)
        except PromptBuildError as e:
            raise GenerationError(str(e)) from e

        return self._run(spec, self.question_max_tokens, stage_value(conversation.current_stage))

    def generate_follow_up(self, stage: StageLike, answer_text: str, issue: str) -> str:
        """
        Generate a follow-up question targeting `issue`.

        Raises:
            GenerationError: LLM failure or empty output
        """
        spec = build_follow_up_prompt(stage, answer_text, issue)
        return self._run(spec, self.follow_up_max_tokens, f"{stage_value(stage)}/{issue}")
