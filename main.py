"""
Console Test Harness for ConversationOrchestrator (Functional Core)

Console loop that drives a full brainstorming conversation, then
generates and exports the outline.
"""

import argparse
import logging
import sys
import traceback
from pathlib import Path

from app import LOG_FORMAT, initialize_models
from brainstorm.config import BrainstormConfig
from brainstorm.contracts import ConversationState, Stage, stage_value
from brainstorm.core.state_updates import apply_decision, go_back, record_question
from brainstorm.errors import OutlineGenerationError
from brainstorm.utils.outline_export import EXPORT_FORMATS, export_outline
from brainstorm.utils.prompts import COMMON_APP_PROMPTS, get_prompt_by_id

logger = logging.getLogger(__name__)

EXIT_COMMANDS = {"quit", "exit", "stop"}
BACK_COMMAND = "back"


def print_separator(char="=", length=60):
    """Print a separator line"""
    print(char * length)


def print_debug_info(decision):
    """Print classification and fallback details from a TurnDecision"""
    print("-" * 60)
    if decision.classification is not None:
        print(f"Category: {decision.classification.category}")
        if decision.classification.reasoning:
            print(f"Reasoning: {decision.classification.reasoning}")
    for key, value in decision.debug.items():
        print(f"{key}: {value}")
    print("-" * 60)


def choose_prompt():
    """Ask the student to pick an essay prompt; returns prompt id or None"""
    print("\nChoose a prompt:\n")
    for index, prompt in enumerate(COMMON_APP_PROMPTS, start=1):
        print(f"  {index}. {prompt.title}")
        print(f"     {prompt.description}")

    while True:
        choice = input("\nPrompt number (or id): ").strip().lower()
        if choice in EXIT_COMMANDS:
            return None
        if choice.isdigit() and 1 <= int(choice) <= len(COMMON_APP_PROMPTS):
            return COMMON_APP_PROMPTS[int(choice) - 1].id
        if get_prompt_by_id(choice) is not None:
            return choice
        print("Unknown prompt, try again.")


def run_conversation(orchestrator, conversation, show_debug=False):
    """
    Ask questions until the conversation is COMPLETE.

    Returns:
        ConversationState, or None if the student quit
    """
    while stage_value(conversation.current_stage) != Stage.COMPLETE.value:
        question = orchestrator.handle_turn(conversation)
        conversation = record_question(conversation, question.question, question.stage)

        print(f"\n[{stage_value(conversation.current_stage)} - {conversation.progress_percentage}%]")
        print(f"\nCounselor: {question.question}\n")

        answer = input("> ").strip()
        if not answer:
            print("Please enter a response.")
            continue
        if answer.lower() in EXIT_COMMANDS:
            return None
        if answer.lower() == BACK_COMMAND:
            conversation = go_back(conversation)
            continue

        decision = orchestrator.handle_turn(conversation, answer)
        conversation = apply_decision(conversation, answer, decision)

        if show_debug:
            print_debug_info(decision)

    return conversation


def main(argv=None):
    """Run console brainstorming session"""
    parser = argparse.ArgumentParser(description="Essay brainstorming console harness")
    parser.add_argument("--export", choices=EXPORT_FORMATS, default="markdown",
                        help="Outline export format")
    parser.add_argument("--output", help="Write the exported outline to this file")
    parser.add_argument("--debug", action="store_true", help="Show classification details")
    args = parser.parse_args(argv)

    config = BrainstormConfig.from_env()
    logging.basicConfig(level=config.log_level, format=LOG_FORMAT)

    print_separator()
    print("ESSAY BRAINSTORMING - CONSOLE TEST")
    print_separator()
    print("\nInitializing modules (this may take 30 seconds)...")

    try:
        orchestrator, outline_generator = initialize_models(config)
        print("\nModules initialized successfully!")
    except Exception as e:
        print(f"\nFailed to initialize: {e}")
        traceback.print_exc()
        return 1

    prompt_id = choose_prompt()
    if prompt_id is None:
        return 0

    print_separator()
    print("STARTING BRAINSTORM")
    print_separator()
    print("Type 'back' to revisit the previous question, 'quit' to end early")

    try:
        conversation = run_conversation(orchestrator, ConversationState.new(prompt_id), args.debug)
    except KeyboardInterrupt:
        print("\n\nSession interrupted by user (Ctrl+C)")
        return 0

    if conversation is None:
        print("\nSession ended early.")
        return 0

    print_separator()
    print("BRAINSTORM COMPLETE")
    print_separator()
    print("\nGenerating outline...")

    try:
        outline = outline_generator.generate(conversation)
    except OutlineGenerationError as e:
        print(f"\nOutline generation failed: {e}")
        return 1

    rendered = export_outline(outline, args.export)
    if args.output:
        Path(args.output).write_text(rendered, encoding="utf-8")
        print(f"\nOutline written to {args.output}")
    else:
        print("\n" + rendered)

    if outline.explanation:
        print(f"\nWhy this structure: {outline.explanation}")
    if outline.follow_up_prompt:
        print(f"\n{outline.follow_up_prompt}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
