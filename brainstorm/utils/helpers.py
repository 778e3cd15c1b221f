"""
Utility helpers for the essay brainstorming system

Small helpers for IDs, timestamps, timeouts and JSON cleanup.
"""

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


def generate_session_id(short=False):
    """
    Generate unique session identifier

    Args:
        short (bool): If True, return 8-char hex. If False, return full UUID.

    Returns:
        str: Session ID

    Examples:
        >>> generate_session_id(short=True)
        'a3f7e2b9'
    """
    full_id = uuid.uuid4().hex
    return full_id[:8] if short else full_id


def generate_message_id():
    """Generate a message identifier (UUID4 string)."""
    return str(uuid.uuid4())


def utc_now_iso():
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def call_with_timeout(func, timeout, *args, **kwargs):
    """
    Run func(*args, **kwargs), giving up after `timeout` seconds.

    With timeout None the call runs inline. On expiry the worker thread is
    abandoned (not killed) and TimeoutError is raised.

    Raises:
        TimeoutError: If the call did not finish in time
    """
    if timeout is None:
        return func(*args, **kwargs)

    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(func, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        logger.warning(f"{getattr(func, '__name__', 'call')} timed out after {timeout}s")
        raise TimeoutError(f"LLM call exceeded {timeout}s")
    finally:
        executor.shutdown(wait=False)


def repair_json(text):
    """
    Clean LLM output down to a single JSON object string.

    - Strips markdown code fences
    - Keeps the text between the first '{' and the last '}'
    - Appends missing closing braces (naive, ignores braces inside strings)

    Args:
        text (str): Raw LLM output

    Returns:
        str: Cleaned text (may still fail json.loads)
    """
    text = text.strip()
    text = text.replace("```json", "").replace("```", "").strip()

    first_brace = text.find('{')
    last_brace = text.rfind('}')

    if first_brace == -1:
        logger.warning("No braces found in JSON repair")
        return text

    if last_brace < first_brace:
        text = text[first_brace:]
    else:
        text = text[first_brace:last_brace + 1]

    missing = text.count('{') - text.count('}')
    if missing > 0:
        text += '}' * missing
        logger.debug(f"Added {missing} closing braces")

    return text
