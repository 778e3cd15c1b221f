"""
Prompt Builder - Construct LLM prompts for each brainstorming task

Responsibilities:
- Stage question prompts (Q1-Q7), tailored to the essay prompt
- Adaptive follow-up prompts (per issue tag)
- Response quality analysis prompt
- Outline generation prompt (per essay prompt structure)
- Section refinement prompt
- Conversation history formatting

NOT responsible for:
- Stage sequencing
- LLM calls
- Parsing LLM output

Design principles:
- Fail-fast validation (no partial builds)
- Every builder returns a PromptSpec (system + user text)
- Model-specific formatting is left to PromptFormatter
"""

import logging
from dataclasses import dataclass
from typing import Dict

from brainstorm.contracts import (
    ISSUE_MISSED_QUESTION,
    ISSUE_TOO_ABSTRACT,
    ISSUE_TOO_SHORT,
    ISSUE_TOO_VAGUE,
    ROLE_ASSISTANT,
    ConversationState,
    Stage,
    StageLike,
    stage_value,
)
from brainstorm.utils.prompts import get_prompt_by_id

logger = logging.getLogger(__name__)


class PromptBuildError(Exception):
    """Raised when prompt cannot be built due to invalid/incomplete input"""
    pass


@dataclass(frozen=True)
class PromptSpec:
    """
    Compiled prompt ready for the LLM client.

    Attributes:
        system: Instructions and context
        user: The concrete request
    """
    system: str
    user: str


BASE_SYSTEM_PROMPT = """You are a warm, supportive college essay brainstorming counselor helping a high school senior discover their authentic story. Ask thoughtful Socratic questions that help students reflect on their experiences.

Core principles:
1. NEVER write essay content for the student - only ask questions
2. Use the student's own language and ideas
3. Push for specific details and concrete moments, not abstractions
4. Value authenticity over "impressiveness"
5. Be encouraging, especially when students share vulnerable moments
6. Normalize imperfection - growth comes from struggle

Tone:
- Conversational, like a supportive mentor rather than a formal teacher
- Use "you" and "your"
- Ask open-ended questions that can't be answered with yes/no
- Keep questions to 2-3 sentences
- Ask ONE thing at a time"""

QUESTION_ONLY_INSTRUCTION = (
    "IMPORTANT: Generate ONLY the question text. Do NOT ask for more information or "
    "clarification. You already have the context you need. Just generate the question directly."
)

PROMPT_INTROS: Dict[str, str] = {
    'challenge': (
        'The student selected the "Challenge, Setback, or Failure" prompt. They need to '
        'identify experiences where they faced difficulty and learned from it.'
    ),
    'identity': (
        'The student selected the "Background, Identity, Interest, or Talent" prompt. They '
        'need to identify aspects of who they are that feel central to their identity.'
    ),
    'belief': (
        'The student selected the "Questioning or Challenging a Belief" prompt. They need to '
        'identify times they changed their mind or stood up for something they believed in.'
    ),
    'choice': (
        'The student selected the "Topic of Your Choice" prompt. They can write about '
        'anything meaningful to them.'
    ),
}

# Per-stage goal and key points; {history} is filled with the formatted conversation
STAGE_GOALS: Dict[str, str] = {
    Stage.Q2_SELECTION.value: """The student has just listed potential experiences:

{history}

Your task: Ask them to choose the ONE experience that feels most meaningful to THEM (not the most impressive) and to explain WHY they chose it. Briefly acknowledge what they shared.""",

    Stage.Q3_SPECIFIC_MOMENT.value: """The student has selected an experience and explained why:

{history}

Your task: Help them zoom into a SPECIFIC moment or scene. Ask where they were, what was happening, and what they were thinking or feeling. Don't let them stay abstract.""",

    Stage.Q4_DILEMMA.value: """The student has described a specific moment:

{history}

Your task: Uncover the DILEMMA or internal conflict. Ask what decision they faced, which options or values they were weighing, and why it was difficult. Reassure them it's okay if they didn't handle it perfectly.""",

    Stage.Q5_ACTION.value: """The student has described their dilemma:

{history}

Your task: Ask what they actually DID - the specific steps they took and why they chose that approach over others. Focus on process, not just outcome.""",

    Stage.Q6_DISCOVERY.value: """The student has described what they did:

{history}

Your task: Ask what surprised them or what they discovered about themselves, others, or the world. The best insights are specific and slightly uncomfortable.""",

    Stage.Q7_FUTURE.value: """The student has shared their discovery:

{history}

Your task: Ask a final question about how this experience shapes how they approach challenges or their future (including college). Keep it grounded - small shifts in perspective count.""",
}

FOLLOW_UP_ISSUES: Dict[str, str] = {
    ISSUE_TOO_VAGUE: (
        "The student's response was too vague or generic. Gently ask for a specific example "
        "or what they meant by a vague term they used. Sound curious, not critical."
    ),
    ISSUE_TOO_SHORT: (
        "The student's response was very brief. Affirm what they shared, then encourage them "
        "to say a bit more without making them feel inadequate."
    ),
    ISSUE_TOO_ABSTRACT: (
        "The student stayed abstract when concrete details were needed. Pull them into a "
        "specific scene: what they saw, heard, or felt in that moment."
    ),
    ISSUE_MISSED_QUESTION: (
        "The student didn't fully answer the question. Acknowledge what they shared, then "
        "politely guide them back to the original question."
    ),
}

OUTLINE_STRUCTURES: Dict[str, str] = {
    'challenge': """Essay structure for the challenge/setback prompt:
- Opening Hook: the specific moment of realization or crisis
- Background Context: what was at stake
- The Dilemma: internal conflict or decision point
- The Action/Process: what they actually did, including missteps
- Turning Point: key moment of insight or change
- Resolution: what happened (not necessarily "success")
- Reflection: what they learned about themselves
- Looking Forward: how this shapes their future approach""",

    'identity': """Essay structure for the identity/background prompt:
- Opening Hook: a moment that captures this identity in action
- Background: where this identity comes from
- Complexity: tensions, contradictions, or evolution of this identity
- Key Moment: when this identity felt most important or visible
- Impact: how it shapes their perspective or actions
- Connection: why it matters for who they're becoming""",

    'belief': """Essay structure for the questioning/challenging a belief prompt:
- Opening Hook: the moment of questioning or challenge
- The Belief: what they used to think
- The Catalyst: what prompted reconsideration
- The Process: how their thinking evolved
- The Outcome: where they landed
- The Impact: how this shapes their thinking now""",

    'choice': """Essay structure for the open choice prompt:
- Opening Hook: a compelling entry point
- Context: what the reader needs to know
- Development: the story or idea unfolds
- Complexity: depth, nuance, or unexpected elements
- Reflection: what this reveals about the student
- Significance: why this matters""",
}


def format_conversation_history(conversation: ConversationState) -> str:
    """
    Render messages and recorded answers as plain text for prompts.

    Args:
        conversation: Conversation snapshot

    Returns:
        str: History text ('No conversation history yet.' when empty)
    """
    if not conversation.messages:
        return "No conversation history yet."

    lines = []
    for message in conversation.messages:
        speaker = "ASSISTANT" if message.role == ROLE_ASSISTANT else "STUDENT"
        lines.append(f"{speaker}: {message.content}")
    history = "\n\n".join(lines)

    answers = [
        f"Student's response to {stage}: {answer}"
        for stage, answer in conversation.responses
        if stage not in (Stage.FOLLOWUP.value, Stage.COMPLETE.value)
    ]
    if answers:
        history += "\n\n--- Additional Context ---\n" + "\n\n".join(answers)

    return history


def _require_prompt_id(prompt_id: str) -> None:
    if get_prompt_by_id(prompt_id) is None:
        raise PromptBuildError(f"Unknown prompt id: {prompt_id!r}")


def build_stage_prompt(conversation: ConversationState) -> PromptSpec:
    """
    Build the question-generation prompt for conversation.current_stage.

    Raises:
        PromptBuildError: Unknown prompt id, or a stage without a question
            (FOLLOWUP and COMPLETE questions are not generated here)
    """
    _require_prompt_id(conversation.prompt_id)
    stage = stage_value(conversation.current_stage)

    if stage == Stage.Q1_EXPLORATION.value:
        body = (
            f"{PROMPT_INTROS[conversation.prompt_id]}\n\n"
            "Your task: Generate a warm opening question that asks them to list 3-4 "
            "experiences without filtering themselves. Reassure them these can be big or "
            "small and that they shouldn't worry about sounding impressive yet. Suggest a few "
            "categories (academic, personal, social, activities, family). Keep it to 2-3 "
            'sentences and end with "A quick phrase for each is fine."'
        )
        user = (
            "Generate the opening question for this brainstorming session. Keep it to "
            "2-3 sentences."
        )
    elif stage in STAGE_GOALS:
        history = format_conversation_history(conversation)
        body = STAGE_GOALS[stage].format(history=history)
        user = (
            f"Generate the question for {stage}. Use the conversation history to inform "
            "your question. Keep it to 2-3 sentences."
        )
    else:
        raise PromptBuildError(f"No question prompt for stage {stage!r}")

    system = f"{BASE_SYSTEM_PROMPT}\n\n{body}\n\n{QUESTION_ONLY_INSTRUCTION}"
    return PromptSpec(system=system, user=user)


def build_follow_up_prompt(stage: StageLike, student_response: str, issue: str) -> PromptSpec:
    """
    Build the adaptive follow-up prompt.

    Unknown issue tags fall back to the too_vague guidance.
    """
    guidance = FOLLOW_UP_ISSUES.get(issue, FOLLOW_UP_ISSUES[ISSUE_TOO_VAGUE])

    system = f"""{BASE_SYSTEM_PROMPT}

Current stage: {stage_value(stage)}

The student just responded with:
"{student_response}"

{guidance}

Remember:
- Only ask ONE follow-up question, 2-3 sentences maximum
- Frame it as curiosity, not criticism
- Generate ONLY the question text"""

    user = (
        f'Generate a gentle follow-up question based on the student\'s response: "{student_response}". '
        f"{QUESTION_ONLY_INSTRUCTION}"
    )
    return PromptSpec(system=system, user=user)


def build_analysis_prompt(stage: StageLike, student_response: str) -> PromptSpec:
    """Build the response quality analysis prompt (expects JSON output)."""
    system = """You evaluate college essay brainstorming answers for depth and specificity.

Evaluate:
1. LENGTH: is it too brief (< 15 words)?
2. SPECIFICITY: concrete details, or abstract?
3. DEPTH: reflection, or just surface description?
4. RELEVANCE: does it answer the question asked?

Categories:
- SUFFICIENT: specific, detailed, authentic
- NEEDS_SPECIFICITY: too vague or generic
- NEEDS_DEPTH: surface-level, needs reflection
- NEEDS_EXPANSION: too brief
- OFF_TRACK: didn't answer the question

Respond ONLY with valid JSON:
{"category": "<CATEGORY>", "reasoning": "<brief explanation>", "needsFollowUp": true|false}

Examples:
"It was really hard." -> {"category": "NEEDS_SPECIFICITY", "reasoning": "Too vague - what made it hard?", "needsFollowUp": true}
"I learned to persevere." -> {"category": "NEEDS_DEPTH", "reasoning": "Generic lesson, lacks personal insight", "needsFollowUp": true}"""

    user = f"""Current stage: {stage_value(stage)}
Student response: "{student_response}"

Now analyze the response."""
    return PromptSpec(system=system, user=user)


def build_outline_prompt(conversation: ConversationState) -> PromptSpec:
    """Build the outline generation prompt (expects JSON output)."""
    _require_prompt_id(conversation.prompt_id)
    history = format_conversation_history(conversation)

    system = f"""You are creating a detailed essay outline from a brainstorming conversation.

The student selected: {conversation.prompt_id} prompt

{OUTLINE_STRUCTURES[conversation.prompt_id]}

Rules:
- Use ONLY the student's own words, phrases, and ideas; quote them exactly
- Include every specific detail they mentioned (sensory details, moments, emotions)
- Preserve their voice; do not polish, formalize, or add details
- Each section should be 3-6 sentences
- If a section is missing information, address the student as "you": "You haven't described ... yet. This section could include: ..."

Respond ONLY with valid JSON:
{{
  "sections": [{{"title": "<section title>", "content": "<section content>"}}],
  "explanation": "<4-6 sentences on why the outline is structured this way, specific to their story>",
  "followUpPrompt": "<2-3 warm sentences inviting them to submit their full essay for feedback>"
}}"""

    user = f"Here is the complete conversation:\n\n{history}\n\nGenerate the outline."
    return PromptSpec(system=system, user=user)


def build_refinement_prompt(section_title: str, current_content: str,
                            conversation: ConversationState) -> PromptSpec:
    """Build the prompt for section refinement questions (numbered list output)."""
    if not section_title:
        raise PromptBuildError("section_title is required")

    history = format_conversation_history(conversation)
    system = f"""The student wants to strengthen this section of their outline:

Section: {section_title}
Current content: "{current_content}"

Previous conversation context:

{history}

Your task: Generate 2-3 targeted questions that help them add depth to this section only.
- Ask for specific details, sensory information, or deeper reflection
- Number your questions (1. 2. 3.)
- Each question should invite 2-3 sentences of response"""

    return PromptSpec(system=system, user="Generate the refinement questions.")
