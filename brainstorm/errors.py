"""
Exception types for the essay brainstorming system.

Input errors (surfaced to the caller as client errors):
- ConversationRequiredError
- MalformedConversationError
- InvalidPromptError
- TurnInProgressError
- StaleSessionError

Collaborator errors (caught locally during a chat turn, fallback applied):
- ClassificationError
- GenerationError

Outline errors (no fallback, surfaced as server errors):
- OutlineGenerationError
"""


class BrainstormError(Exception):
    """Base class for all brainstorming errors"""
    pass


class ConversationRequiredError(BrainstormError):
    """Raised when a request carries no conversation state"""
    pass


class MalformedConversationError(BrainstormError, ValueError):
    """Raised when a conversation payload does not match the expected shape"""
    pass


class InvalidPromptError(BrainstormError):
    """Raised when conversation.promptId does not resolve to a known prompt"""

    def __init__(self, prompt_id):
        self.prompt_id = prompt_id
        super().__init__(f"Invalid prompt ID: {prompt_id!r}")


class TurnInProgressError(BrainstormError):
    """Raised when a second turn is submitted while one is still running"""
    pass


class StaleSessionError(BrainstormError):
    """Raised when the stored session was replaced or cleared during a turn"""
    pass


class ClassificationError(BrainstormError):
    """Raised when classifier output is missing or cannot be interpreted"""
    pass


class GenerationError(BrainstormError):
    """Raised when question or follow-up generation yields no usable text"""
    pass


class OutlineGenerationError(BrainstormError):
    """Raised when an outline cannot be produced from generator output"""
    pass
