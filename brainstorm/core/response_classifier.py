"""
Response Classifier - Judge whether a student's answer needs a follow-up

Responsibilities:
- Build the analysis prompt for (stage, answer)
- Call the LLM for a JSON judgment
- Parse and validate the judgment into a Classification

Contract:
    classify(stage, answer_text) -> Classification
    Raises ClassificationError on generation failure or malformed output.
    The orchestrator owns the fallback; this module never guesses.

Design principles:
- Strict category validation (unknown category is malformed output)
- needsFollowUp derived from category when the model omits it
"""

import json
import logging

from brainstorm.contracts import (
    CATEGORY_SUFFICIENT,
    VALID_CATEGORIES,
    Classification,
    StageLike,
    stage_value,
)
from brainstorm.errors import ClassificationError
from brainstorm.utils.prompt_builder import build_analysis_prompt

logger = logging.getLogger(__name__)


class ResponseClassifier:
    """Classify answer quality with an LLM"""

    def __init__(self, llm_client, temperature: float = 0.0, max_tokens: int = 200) -> None:
        """
        Args:
            llm_client: Client with callable generate_json(spec, max_tokens, temperature)
            temperature: Sampling temperature (default 0.0)
            max_tokens: Max tokens to generate (default 200)

        Raises:
            TypeError: If llm_client lacks generate_json()
            RuntimeError: If llm_client model not loaded
        """
        if not callable(getattr(llm_client, 'generate_json', None)):
            raise TypeError("llm_client must have callable generate_json() method")

        if hasattr(llm_client, 'is_loaded') and not llm_client.is_loaded():
            raise RuntimeError("LLM client model not loaded")

        self.llm_client = llm_client
        self.temperature = temperature
        self.max_tokens = max_tokens

        logger.info(f"Response Classifier initialized (temp={temperature}, max_tokens={max_tokens})")

    def classify(self, stage: StageLike, answer_text: str) -> Classification:
        """
        Classify a student's answer.

        Args:
            stage: Stage the answer was given at
            answer_text: The student's answer

        Returns:
            Classification

        Raises:
            ClassificationError: If the LLM fails or returns unusable output
        """
        stage_name = stage_value(stage)
        spec = build_analysis_prompt(stage, answer_text)

        try:
            raw_output = self.llm_client.generate_json(
                spec,
                max_tokens=self.max_tokens,
                temperature=self.temperature
            )
        except Exception as e:
            logger.error(f"[{stage_name}] Classification generation failed: {type(e).__name__} - {e}")
            raise ClassificationError(f"generation failed: {e}") from e

        classification = self.parse_output(raw_output)
        logger.info(
            f"[{stage_name}] Classified as {classification.category} "
            f"(needs_follow_up={classification.needs_follow_up})"
        )
        return classification

    @staticmethod
    def parse_output(raw_output: str) -> Classification:
        """
        Parse the LLM's JSON judgment.

        Raises:
            ClassificationError: Invalid JSON, non-object JSON, or unknown category
        """
        try:
            parsed = json.loads(raw_output)
        except (TypeError, json.JSONDecodeError) as e:
            logger.warning(f"Invalid classification JSON: {e}")
            raise ClassificationError(f"invalid JSON: {e}") from e

        if not isinstance(parsed, dict):
            raise ClassificationError(f"expected JSON object, got {type(parsed).__name__}")

        category = parsed.get('category')
        if isinstance(category, str):
            category = category.strip().upper()
        if category not in VALID_CATEGORIES:
            raise ClassificationError(f"unknown category: {category!r}")

        needs_follow_up = parsed.get('needsFollowUp')
        if not isinstance(needs_follow_up, bool):
            needs_follow_up = category != CATEGORY_SUFFICIENT

        reasoning = parsed.get('reasoning')
        return Classification(
            needs_follow_up=needs_follow_up,
            category=category,
            reasoning=reasoning if isinstance(reasoning, str) else "",
        )
