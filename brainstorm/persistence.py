"""
Brainstorming session persistence.

One JSON file per storage key for the single active session, so a
restart picks the conversation up where the student left it.
"""

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

from brainstorm.contracts import ConversationState, stage_value
from brainstorm.errors import StaleSessionError
from brainstorm.results import BrainstormSession
from brainstorm.utils.helpers import generate_session_id, utc_now_iso

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "brainstorm-session"


class SessionStore:
    """
    Key-value store for the active brainstorming session.

    Layout:
        outputs/sessions/
            brainstorm-session.json

    Design:
    - At most one active session per storage key
    - Whole-record overwrite on save (written to a temp file, then renamed)
    - Missing file means no session
    """

    def __init__(self, base_dir: str = "outputs/sessions",
                 storage_key: str = DEFAULT_STORAGE_KEY):
        """
        Initialize session store.

        Args:
            base_dir: Directory holding session files
            storage_key: Fixed key of the active session record

        Raises:
            ValueError: If storage_key is empty or contains a path separator
        """
        if not storage_key or "/" in storage_key or "\\" in storage_key:
            raise ValueError(f"Invalid storage key: {storage_key!r}")

        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.storage_key = storage_key
        logger.info(f"SessionStore initialized: {self.path}")

    @property
    def path(self) -> Path:
        return self.base_dir / f"{self.storage_key}.json"

    def create(self, prompt_id: str) -> BrainstormSession:
        """
        Start a new session for a prompt, replacing any existing one.

        Args:
            prompt_id: Essay prompt identifier

        Returns:
            BrainstormSession: The saved session
        """
        now = utc_now_iso()
        session = BrainstormSession(
            id=generate_session_id(),
            conversation=ConversationState.new(prompt_id),
            created_at=now,
            updated_at=now,
        )
        self._write(session)
        logger.info(f"Created session {session.id} for prompt '{prompt_id}'")
        return session

    def load(self) -> Optional[BrainstormSession]:
        """
        Load the active session.

        Returns:
            BrainstormSession if one is stored, None otherwise

        Raises:
            MalformedConversationError: If the stored conversation is invalid
        """
        if not self.path.exists():
            return None

        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        return BrainstormSession.from_json(data)

    def save(self, session: BrainstormSession, require_current: bool = False) -> BrainstormSession:
        """
        Persist a session, stamping updatedAt.

        Args:
            session: Session to write
            require_current: Only overwrite if the stored session has the same id

        Returns:
            BrainstormSession: The session as written

        Raises:
            StaleSessionError: require_current is set and the stored session
                was replaced or cleared
        """
        if require_current:
            stored = self.load()
            if stored is None or stored.id != session.id:
                raise StaleSessionError(
                    f"Session {session.id} is no longer the active session"
                )

        stamped = replace(session, updated_at=utc_now_iso())
        self._write(stamped)
        logger.debug(f"Saved session {stamped.id} at stage {stage_value(stamped.conversation.current_stage)}")
        return stamped

    def clear(self) -> bool:
        """
        Delete the active session.

        Returns:
            bool: True if a session was removed
        """
        if not self.path.exists():
            return False

        self.path.unlink()
        logger.info(f"Cleared session file {self.path.name}")
        return True

    def _write(self, session: BrainstormSession) -> None:
        tmp_path = self.path.with_suffix(".json.tmp")
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(session.to_json(), f, indent=2, ensure_ascii=False)
        tmp_path.replace(self.path)
