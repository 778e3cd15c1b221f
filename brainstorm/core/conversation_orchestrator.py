"""
Conversation Orchestrator - One brainstorming turn (Functional Core)

Responsibilities:
- Validate the essay prompt behind a conversation
- Return the question for the current stage (no answer submitted)
- Classify a submitted answer, gate the follow-up detour, and decide the next stage
- Apply deterministic fallbacks when the LLM collaborators fail or time out

Design principles:
- Ephemeral per turn (no conversation state held between turns)
- Conversation snapshot in, decision out; the caller merges the decision
- Collaborators injected and duck-typed (no global LLM client)
- Only InvalidPromptError escapes; every LLM step has a local fallback

Turn flow:
    no answer  -> cached question | generated question | static template
    answer     -> classify (fallback: length check)
               -> gate
               -> FOLLOWUP + follow-up question (fallback: generic text)
               |  next real stage + its progress
"""

import logging
from typing import Optional, Union

from brainstorm.contracts import (
    CATEGORY_NEEDS_EXPANSION,
    Classification,
    ConversationState,
    Stage,
    stage_value,
)
from brainstorm.core.follow_up_gate import can_follow_up, map_category_to_issue
from brainstorm.core.stage_sequencer import next_stage_after, progress_for, resolve_real_stage
from brainstorm.errors import InvalidPromptError
from brainstorm.results import QuestionResult, TurnDecision
from brainstorm.utils.helpers import call_with_timeout
from brainstorm.utils.prompts import get_prompt_by_id
from brainstorm.utils.question_templates import GENERIC_FOLLOW_UP, render_stage_template

logger = logging.getLogger(__name__)

TurnResult = Union[QuestionResult, TurnDecision]


class ConversationOrchestrator:
    """
    Runs a single request/response cycle of the brainstorming conversation

    Functional core design:
    - handle_turn() maps (snapshot, optional answer) to a result deterministically,
      apart from the injected LLM calls
    - Nothing is persisted here
    """

    # Answers shorter than this (after trimming) need a follow-up when the
    # classifier is unavailable
    SHORT_ANSWER_THRESHOLD = 20

    def __init__(self, question_generator, response_classifier, llm_timeout: Optional[float] = None):
        """
        Args:
            question_generator: Object with callable generate_question(conversation)
                and generate_follow_up(stage, answer_text, issue)
            response_classifier: Object with callable classify(stage, answer_text)
            llm_timeout: Seconds allowed per LLM call (None = no limit)

        Raises:
            TypeError: If a collaborator is missing a required method
            ValueError: If llm_timeout is not positive
        """
        self._validate_modules(question_generator, response_classifier)

        if llm_timeout is not None and llm_timeout <= 0:
            raise ValueError(f"llm_timeout must be positive, got {llm_timeout}")

        self.generator = question_generator
        self.classifier = response_classifier
        self.llm_timeout = llm_timeout

        logger.info(f"Conversation Orchestrator initialized (llm_timeout={llm_timeout})")

    def _validate_modules(self, question_generator, response_classifier):
        """Validate collaborator interfaces"""
        if not callable(getattr(question_generator, 'generate_question', None)):
            raise TypeError("question_generator must have callable generate_question() method")

        if not callable(getattr(question_generator, 'generate_follow_up', None)):
            raise TypeError("question_generator must have callable generate_follow_up() method")

        if not callable(getattr(response_classifier, 'classify', None)):
            raise TypeError("response_classifier must have callable classify() method")

    def handle_turn(self, conversation: ConversationState,
                    answer_text: Optional[str] = None) -> TurnResult:
        """
        Process one turn.

        Args:
            conversation: Conversation snapshot (not modified)
            answer_text: Student's answer, or None/"" to request the current question

        Returns:
            QuestionResult when no answer was given, TurnDecision otherwise

        Raises:
            InvalidPromptError: If conversation.prompt_id is not a known prompt
        """
        prompt = get_prompt_by_id(conversation.prompt_id)
        if prompt is None:
            logger.warning(f"Rejected turn for unknown prompt id {conversation.prompt_id!r}")
            raise InvalidPromptError(conversation.prompt_id)

        if not answer_text:
            return self._current_question(conversation, prompt.full_text)

        return self._decide(conversation, answer_text)

    # ------------------------------------------------------------------
    # Case A: question for the current stage
    # ------------------------------------------------------------------

    def _current_question(self, conversation: ConversationState, prompt_text: str) -> QuestionResult:
        stage = conversation.current_stage
        stage_name = stage_value(stage)

        if stage_name == Stage.COMPLETE.value:
            return QuestionResult(
                question=render_stage_template(stage),
                stage=stage,
                source="template"
            )

        cached = conversation.assistant_message_for(stage)
        if cached is not None:
            logger.debug(f"[{stage_name}] Reusing question already asked")
            return QuestionResult(question=cached.content, stage=stage, source="cache")

        # Follow-up text is produced with the decision that opened the detour
        if stage_name == Stage.FOLLOWUP.value:
            logger.warning("FOLLOWUP without a recorded follow-up question, using generic text")
            return QuestionResult(question=GENERIC_FOLLOW_UP, stage=stage, source="template")

        try:
            question = self._call(self.generator.generate_question, conversation)
            return QuestionResult(question=question, stage=stage, source="generated")
        except Exception as e:
            logger.error(f"[{stage_name}] Question generation failed, using template: {type(e).__name__} - {e}")

        return QuestionResult(
            question=render_stage_template(stage, prompt_text),
            stage=stage,
            source="template"
        )

    # ------------------------------------------------------------------
    # Case B: decide what follows a submitted answer
    # ------------------------------------------------------------------

    def _decide(self, conversation: ConversationState, answer_text: str) -> TurnDecision:
        stage = conversation.current_stage
        stage_name = stage_value(stage)
        debug = {}

        if stage_name == Stage.COMPLETE.value:
            logger.warning("Answer submitted after COMPLETE, conversation stays complete")
            return TurnDecision(
                next_stage=Stage.COMPLETE,
                needs_follow_up=False,
                progress_percentage=progress_for(Stage.COMPLETE),
                debug={'ignored': 'conversation already complete'}
            )

        classification = self._classify(stage, answer_text, debug)

        if can_follow_up(conversation, classification):
            issue = map_category_to_issue(classification.category)
            debug['issue'] = issue
            follow_up_question = self._follow_up_question(stage, answer_text, issue, debug)

            logger.info(f"[{stage_name}] Follow-up detour ({classification.category} -> {issue})")
            return TurnDecision(
                next_stage=Stage.FOLLOWUP,
                needs_follow_up=True,
                progress_percentage=progress_for(stage),
                follow_up_question=follow_up_question,
                classification=classification,
                debug=debug
            )

        real_stage = resolve_real_stage(conversation)
        next_stage = next_stage_after(real_stage)
        debug['real_stage'] = stage_value(real_stage)

        logger.info(f"[{stage_name}] Advancing to {next_stage.value}")
        return TurnDecision(
            next_stage=next_stage,
            needs_follow_up=False,
            progress_percentage=progress_for(next_stage),
            classification=classification,
            debug=debug
        )

    def _classify(self, stage, answer_text: str, debug: dict) -> Classification:
        try:
            classification = self._call(self.classifier.classify, stage, answer_text)
            if not isinstance(classification, Classification):
                raise TypeError(f"classifier returned {type(classification).__name__}")
            return classification
        except Exception as e:
            logger.warning(
                f"[{stage_value(stage)}] Classification failed, using length fallback: "
                f"{type(e).__name__} - {e}"
            )
            debug['classification_fallback'] = f"{type(e).__name__}: {e}"
            return self.fallback_classification(answer_text)

    def _follow_up_question(self, stage, answer_text: str, issue: str, debug: dict) -> str:
        try:
            return self._call(self.generator.generate_follow_up, stage, answer_text, issue)
        except Exception as e:
            logger.error(
                f"[{stage_value(stage)}] Follow-up generation failed, using generic text: "
                f"{type(e).__name__} - {e}"
            )
            debug['follow_up_fallback'] = f"{type(e).__name__}: {e}"
            return GENERIC_FOLLOW_UP

    def _call(self, func, *args):
        return call_with_timeout(func, self.llm_timeout, *args)

    @classmethod
    def fallback_classification(cls, answer_text: str) -> Classification:
        """Length-based classification used when the classifier is unavailable."""
        return Classification(
            needs_follow_up=len(answer_text.strip()) < cls.SHORT_ANSWER_THRESHOLD,
            category=CATEGORY_NEEDS_EXPANSION,
            reasoning="Fallback classification (classifier unavailable)"
        )
