"""
Outline Generator - Essay outline and section refinement from a conversation

Responsibilities:
- Generate a structured outline (sections, explanation, follow-up prompt)
- Normalize sections (ids, canRefine flag, drop incomplete sections)
- Generate refinement questions for a single outline section

Design principles:
- No fallback: an outline is derived entirely from the student's answers,
  so any generation or parse failure raises OutlineGenerationError
- Extraction tolerant of code fences and chatter around the JSON object
"""

import json
import logging
import re
from typing import Any, List

from brainstorm.contracts import ConversationState
from brainstorm.errors import InvalidPromptError, OutlineGenerationError
from brainstorm.results import Outline, OutlineSection
from brainstorm.utils.helpers import utc_now_iso
from brainstorm.utils.prompt_builder import build_outline_prompt, build_refinement_prompt
from brainstorm.utils.prompts import get_prompt_by_id

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?\n?")
_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_NUMBERED_LINE = re.compile(r"^\d+\.\s*")


def extract_json_object(text: str) -> Any:
    """
    Parse the outermost JSON object in LLM output.

    Raises:
        OutlineGenerationError: If no valid JSON can be parsed
    """
    cleaned = _CODE_FENCE.sub("", text or "").strip()

    match = _JSON_OBJECT.search(cleaned)
    if match:
        cleaned = match.group(0)

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse outline JSON: {e}")
        raise OutlineGenerationError("Failed to generate outline") from e


def normalize_sections(raw_sections: Any) -> List[OutlineSection]:
    """
    Build OutlineSection objects from raw section dicts.

    Sections without a string title and content are dropped. Missing ids
    become 'section-{index}' (index in the raw list); canRefine defaults to True.
    """
    if not isinstance(raw_sections, list):
        return []

    sections = []
    for index, raw in enumerate(raw_sections):
        if not isinstance(raw, dict):
            continue

        title = raw.get('title')
        content = raw.get('content')
        if not isinstance(title, str) or not isinstance(content, str):
            logger.warning(f"Dropping outline section {index}: missing title or content")
            continue

        section_id = raw.get('id')
        can_refine = raw.get('canRefine')
        sections.append(OutlineSection(
            id=section_id if isinstance(section_id, str) and section_id else f"section-{index}",
            title=title,
            content=content,
            can_refine=can_refine if isinstance(can_refine, bool) else True,
        ))

    return sections


def parse_numbered_questions(text: str) -> List[str]:
    """Keep numbered lines ('1. ...') and strip their numbering."""
    questions = []
    for line in (text or "").split("\n"):
        stripped = line.strip()
        if _NUMBERED_LINE.match(stripped):
            questions.append(_NUMBERED_LINE.sub("", stripped).strip())
    return questions


class OutlineGenerator:
    """Generate essay outlines with an LLM"""

    def __init__(self, llm_client, outline_max_tokens: int = 4000,
                 refinement_max_tokens: int = 400, temperature: float = 0.7) -> None:
        """
        Args:
            llm_client: Client with callable generate(spec, max_tokens, temperature)
            outline_max_tokens: Token limit for the outline
            refinement_max_tokens: Token limit for refinement questions
            temperature: Sampling temperature

        Raises:
            TypeError: If llm_client lacks generate()
        """
        if not callable(getattr(llm_client, 'generate', None)):
            raise TypeError("llm_client must have callable generate() method")

        self.llm_client = llm_client
        self.outline_max_tokens = outline_max_tokens
        self.refinement_max_tokens = refinement_max_tokens
        self.temperature = temperature

        logger.info("Outline Generator initialized")

    def generate(self, conversation: ConversationState) -> Outline:
        """
        Generate an outline for a conversation.

        Args:
            conversation: Conversation snapshot (normally COMPLETE)

        Returns:
            Outline

        Raises:
            InvalidPromptError: Unknown prompt id
            OutlineGenerationError: LLM failure or unparseable output
        """
        if get_prompt_by_id(conversation.prompt_id) is None:
            raise InvalidPromptError(conversation.prompt_id)

        spec = build_outline_prompt(conversation)
        try:
            text = self.llm_client.generate(
                spec,
                max_tokens=self.outline_max_tokens,
                temperature=self.temperature
            )
        except Exception as e:
            logger.error(f"Outline generation failed: {type(e).__name__} - {e}")
            raise OutlineGenerationError(str(e)) from e

        parsed = extract_json_object(text)
        if not isinstance(parsed, dict):
            raise OutlineGenerationError(f"Outline must be a JSON object, got {type(parsed).__name__}")

        sections = normalize_sections(parsed.get('sections'))
        explanation = parsed.get('explanation')
        follow_up_prompt = parsed.get('followUpPrompt')

        logger.info(f"Generated outline with {len(sections)} sections for '{conversation.prompt_id}'")
        return Outline(
            sections=tuple(sections),
            explanation=explanation if isinstance(explanation, str) else "",
            follow_up_prompt=follow_up_prompt if isinstance(follow_up_prompt, str) else "",
            generated_at=utc_now_iso(),
            prompt_id=conversation.prompt_id,
        )

    def generate_refinement_questions(self, section_title: str, current_content: str,
                                      conversation: ConversationState) -> List[str]:
        """
        Generate questions that deepen one outline section.

        Returns:
            list[str]: Questions (may be empty if the model ignored the numbering)

        Raises:
            OutlineGenerationError: LLM failure
        """
        spec = build_refinement_prompt(section_title, current_content, conversation)
        try:
            text = self.llm_client.generate(
                spec,
                max_tokens=self.refinement_max_tokens,
                temperature=self.temperature
            )
        except Exception as e:
            logger.error(f"Refinement generation failed for '{section_title}': {type(e).__name__} - {e}")
            raise OutlineGenerationError(str(e)) from e

        questions = parse_numbered_questions(text)
        if not questions:
            logger.warning(f"No numbered questions in refinement output for '{section_title}'")
        return questions
