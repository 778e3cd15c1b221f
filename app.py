"""
Flask Web Application for the Essay Brainstorming System

HTTP wrapper around the conversation orchestrator and outline generator.

Endpoints:
- POST   /api/chat              Turn: current question, or decision for an answer
- POST   /api/generate-outline  Outline for a finished conversation
- POST   /api/refine-section    Questions that deepen one outline section
- GET    /api/prompts           Essay prompt catalog
- POST   /api/session           Start a server-held session
- GET    /api/session           Current server-held session
- POST   /api/session/answer    Answer the current question of the session
- POST   /api/session/back      Step the session back one question
- DELETE /api/session           Discard the session
"""

import logging
from dataclasses import replace

from flask import Flask, jsonify, request

from brainstorm.config import BrainstormConfig
from brainstorm.contracts import ConversationState, Stage, stage_value
from brainstorm.core.conversation_orchestrator import ConversationOrchestrator
from brainstorm.core.outline_generator import OutlineGenerator
from brainstorm.core.question_generator import QuestionGenerator
from brainstorm.core.response_classifier import ResponseClassifier
from brainstorm.core.state_updates import apply_decision, go_back, record_question
from brainstorm.errors import (
    ConversationRequiredError,
    InvalidPromptError,
    MalformedConversationError,
    OutlineGenerationError,
    StaleSessionError,
    TurnInProgressError,
)
from brainstorm.persistence import SessionStore
from brainstorm.session_guard import InFlightGuard
from brainstorm.utils.prompts import COMMON_APP_PROMPTS, get_prompt_by_id

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _error(message, status, details=None):
    body = {'error': message}
    if details is not None:
        body['details'] = details
    return jsonify(body), status


def _request_body():
    """JSON request body as a dict; anything else (missing, array, scalar) is empty"""
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _conversation_from_body(body):
    """
    Raises:
        ConversationRequiredError: No conversation in the body
        MalformedConversationError: Conversation shape is invalid
    """
    raw = body.get('conversation')
    if not raw:
        raise ConversationRequiredError("Conversation state required")
    return ConversationState.from_json(raw)


def _parse_conversation(body):
    """
    Pull and validate the conversation from a request body.

    Returns:
        (ConversationState, None) on success, (None, error_response) otherwise
    """
    try:
        conversation = _conversation_from_body(body)
    except ConversationRequiredError as e:
        return None, _error(str(e), 400)
    except MalformedConversationError as e:
        logger.warning(f"Malformed conversation payload: {e}")
        return None, _error("Malformed conversation", 400, str(e))

    if get_prompt_by_id(conversation.prompt_id) is None:
        return None, _error("Invalid prompt ID", 400)

    return conversation, None


def create_app(orchestrator, outline_generator, session_store=None, guard=None):
    """
    Build the Flask application.

    Args:
        orchestrator: ConversationOrchestrator (or compatible handle_turn())
        outline_generator: OutlineGenerator (or compatible generate() and
            generate_refinement_questions())
        session_store: SessionStore for the /api/session endpoints (None disables them)
        guard: InFlightGuard for session turns (created if not given)

    Returns:
        Flask: Configured application
    """
    app = Flask(__name__)
    guard = guard or InFlightGuard()

    @app.after_request
    def add_cors_headers(response):
        response.headers['Access-Control-Allow-Origin'] = '*'
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, DELETE, OPTIONS'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type'
        return response

    @app.route('/')
    def index():
        """Health check"""
        return 'Server is running successfully'

    @app.route('/api/prompts', methods=['GET'])
    def list_prompts():
        return jsonify({'prompts': [prompt.to_json() for prompt in COMMON_APP_PROMPTS]})

    @app.route('/api/chat', methods=['POST'])
    def chat():
        """Return the current question, or the decision for a submitted answer"""
        body = _request_body()

        conversation, error = _parse_conversation(body)
        if error:
            return error

        user_response = body.get('userResponse')
        if user_response is not None and not isinstance(user_response, str):
            return _error("userResponse must be a string", 400)

        try:
            result = orchestrator.handle_turn(conversation, user_response)
            return jsonify(result.to_json())
        except InvalidPromptError:
            return _error("Invalid prompt ID", 400)
        except Exception as e:
            logger.error(f"Error processing chat turn: {type(e).__name__} - {e}")
            return _error("Failed to process request", 500, str(e))

    @app.route('/api/generate-outline', methods=['POST'])
    def generate_outline():
        """Generate an outline from a conversation (no fallback)"""
        body = _request_body()

        conversation, error = _parse_conversation(body)
        if error:
            return error

        try:
            outline = outline_generator.generate(conversation)
            return jsonify(outline.to_json())
        except InvalidPromptError:
            return _error("Invalid prompt ID", 400)
        except Exception as e:
            logger.error(f"Outline generation error: {type(e).__name__} - {e}")
            return _error("Failed to generate outline", 500, str(e))

    @app.route('/api/refine-section', methods=['POST'])
    def refine_section():
        """Generate refinement questions for one outline section"""
        body = _request_body()

        conversation, error = _parse_conversation(body)
        if error:
            return error

        section_title = body.get('sectionTitle')
        if not isinstance(section_title, str) or not section_title.strip():
            return _error("Section title required", 400)

        current_content = body.get('currentContent') or ''
        if not isinstance(current_content, str):
            return _error("currentContent must be a string", 400)

        try:
            questions = outline_generator.generate_refinement_questions(
                section_title, current_content, conversation
            )
            return jsonify({'questions': questions})
        except Exception as e:
            logger.error(f"Refinement error for '{section_title}': {type(e).__name__} - {e}")
            return _error("Failed to generate refinement questions", 500, str(e))

    if session_store is not None:
        _register_session_routes(app, orchestrator, outline_generator, session_store, guard)

    return app


def _register_session_routes(app, orchestrator, outline_generator, session_store, guard):
    """
    Routes that keep the conversation of record on the server.

    The store holds a single session, so every route that writes it runs
    under one guard slot keyed by the storage key.
    """
    store_key = session_store.storage_key

    def with_question(session):
        """Attach the current question to the session, recording it in the history"""
        conversation = session.conversation
        result = orchestrator.handle_turn(conversation)
        if stage_value(conversation.current_stage) != Stage.COMPLETE.value:
            conversation = record_question(conversation, result.question, result.stage)
        return replace(session, conversation=conversation), result.question

    def attach_outline(session):
        """Generate the outline once the conversation is complete; None on failure"""
        try:
            outline = outline_generator.generate(session.conversation)
        except OutlineGenerationError as e:
            logger.error(f"Session {session.id}: outline generation failed: {e}")
            return session, str(e)
        return replace(session, outline=outline), None

    def load_or_404():
        try:
            session = session_store.load()
        except (MalformedConversationError, ValueError, KeyError) as e:
            logger.error(f"Stored session unreadable: {e}")
            return None, _error("Stored session is corrupt", 500, str(e))
        if session is None:
            return None, _error("No active session", 404)
        return session, None

    @app.route('/api/session', methods=['POST'])
    def create_session():
        """Start a new session for a prompt and return its first question"""
        body = _request_body()
        prompt_id = body.get('promptId')
        if not isinstance(prompt_id, str) or get_prompt_by_id(prompt_id) is None:
            return _error("Invalid prompt ID", 400)

        try:
            with guard.acquire(store_key):
                session = session_store.create(prompt_id)
                session, question = with_question(session)
                session = session_store.save(session, require_current=True)
        except TurnInProgressError as e:
            return _error("Turn already in progress", 409, str(e))
        except Exception as e:
            logger.error(f"Error creating session: {type(e).__name__} - {e}")
            return _error("Failed to process request", 500, str(e))

        return jsonify({'session': session.to_json(), 'question': question}), 201

    @app.route('/api/session', methods=['GET'])
    def get_session():
        session, error = load_or_404()
        if error:
            return error

        question = None
        latest = session.conversation.assistant_message_for(session.conversation.current_stage)
        if latest is not None:
            question = latest.content
        return jsonify({'session': session.to_json(), 'question': question})

    @app.route('/api/session/answer', methods=['POST'])
    def answer_session():
        """Submit an answer for the session's current question"""
        body = _request_body()
        answer = body.get('answer')
        if not isinstance(answer, str) or not answer.strip():
            return _error("Answer required", 400)

        try:
            with guard.acquire(store_key):
                session, error = load_or_404()
                if error:
                    return error

                if session.is_complete:
                    return _error("Conversation already complete", 409)

                decision = orchestrator.handle_turn(session.conversation, answer)
                conversation = apply_decision(session.conversation, answer, decision)
                session = replace(session, conversation=conversation)

                outline_error = None
                if session.is_complete:
                    question = None
                    session, outline_error = attach_outline(session)
                else:
                    session, question = with_question(session)

                session = session_store.save(session, require_current=True)
        except TurnInProgressError as e:
            return _error("Turn already in progress", 409, str(e))
        except StaleSessionError as e:
            return _error("Session was replaced", 409, str(e))
        except InvalidPromptError:
            return _error("Invalid prompt ID", 400)
        except Exception as e:
            logger.error(f"Error processing session answer: {type(e).__name__} - {e}")
            return _error("Failed to process request", 500, str(e))

        response = {
            'session': session.to_json(),
            'decision': decision.to_json(),
            'question': question,
        }
        if outline_error is not None:
            response['outlineError'] = outline_error
        return jsonify(response)

    @app.route('/api/session/back', methods=['POST'])
    def back_session():
        """Step back to the previous question"""
        try:
            with guard.acquire(store_key):
                session, error = load_or_404()
                if error:
                    return error

                session = replace(session, conversation=go_back(session.conversation))
                session, question = with_question(session)
                session = session_store.save(session, require_current=True)
        except TurnInProgressError as e:
            return _error("Turn already in progress", 409, str(e))
        except StaleSessionError as e:
            return _error("Session was replaced", 409, str(e))
        except Exception as e:
            logger.error(f"Error stepping session back: {type(e).__name__} - {e}")
            return _error("Failed to process request", 500, str(e))

        return jsonify({'session': session.to_json(), 'question': question})

    @app.route('/api/session', methods=['DELETE'])
    def delete_session():
        try:
            with guard.acquire(store_key):
                cleared = session_store.clear()
        except TurnInProgressError as e:
            return _error("Turn already in progress", 409, str(e))
        return jsonify({'cleared': cleared})


def initialize_models(config):
    """
    Load the LLM and build the collaborators (called once at startup).

    Returns:
        (ConversationOrchestrator, OutlineGenerator)
    """
    from brainstorm.utils.hf_client import HuggingFaceClient

    logger.info("Initializing HuggingFace model (this takes ~30 seconds)...")
    hf_client = HuggingFaceClient(
        model_name=config.model_name,
        load_in_4bit=config.load_in_4bit,
        device=config.device
    )
    logger.info("Model loaded successfully")

    orchestrator = ConversationOrchestrator(
        question_generator=QuestionGenerator(hf_client),
        response_classifier=ResponseClassifier(hf_client),
        llm_timeout=config.llm_timeout
    )
    return orchestrator, OutlineGenerator(hf_client)


if __name__ == '__main__':
    config = BrainstormConfig.from_env()

    logging.basicConfig(level=config.log_level, format=LOG_FORMAT)

    orchestrator, outline_generator = initialize_models(config)
    app = create_app(orchestrator, outline_generator, SessionStore(config.session_dir))

    print("\n" + "=" * 60)
    print("ESSAY BRAINSTORMING SYSTEM - API SERVER")
    print("=" * 60)
    print(f"\nServer starting on http://localhost:{config.port}")
    print("\nPress Ctrl+C to stop the server")
    print("=" * 60 + "\n")

    app.run(host='0.0.0.0', port=config.port)
