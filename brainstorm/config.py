"""
Environment-driven configuration for the brainstorming service.

Usage:
    config = BrainstormConfig.from_env()
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

DEFAULT_MODEL_NAME = "mistralai/Mistral-7B-Instruct-v0.2"
DEFAULT_DEVICE = "cuda"
DEFAULT_SESSION_DIR = "outputs/sessions"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_PORT = 3001

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class BrainstormEnvironmentEnum(Enum):
    """Environment variable names read by BrainstormConfig."""
    MODEL_NAME = "BRAINSTORM_MODEL_NAME"
    LOAD_IN_4BIT = "BRAINSTORM_LOAD_IN_4BIT"
    DEVICE = "BRAINSTORM_DEVICE"
    LLM_TIMEOUT = "BRAINSTORM_LLM_TIMEOUT"
    SESSION_DIR = "BRAINSTORM_SESSION_DIR"
    LOG_LEVEL = "BRAINSTORM_LOG_LEVEL"
    PORT = "PORT"


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean, got: {value!r}")


@dataclass
class BrainstormConfig:
    """Settings for the LLM backend, session storage and HTTP server."""
    model_name: str = DEFAULT_MODEL_NAME
    load_in_4bit: bool = True
    device: str = DEFAULT_DEVICE
    llm_timeout: Optional[float] = None
    session_dir: str = DEFAULT_SESSION_DIR
    log_level: str = DEFAULT_LOG_LEVEL
    port: int = DEFAULT_PORT

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BrainstormConfig":
        """
        Create a BrainstormConfig from environment variables.

        Unset or empty variables keep their defaults.

        Args:
            environ: Mapping to read instead of os.environ (tests)

        Raises:
            ValueError: If a variable has an unparseable or out-of-range value
        """
        env = os.environ if environ is None else environ

        def get(key: BrainstormEnvironmentEnum) -> Optional[str]:
            value = env.get(key.value)
            if value is None or not value.strip():
                return None
            return value.strip()

        config = cls()

        model_name = get(BrainstormEnvironmentEnum.MODEL_NAME)
        if model_name:
            config.model_name = model_name

        load_in_4bit = get(BrainstormEnvironmentEnum.LOAD_IN_4BIT)
        if load_in_4bit is not None:
            config.load_in_4bit = _parse_bool(BrainstormEnvironmentEnum.LOAD_IN_4BIT.value, load_in_4bit)

        device = get(BrainstormEnvironmentEnum.DEVICE)
        if device:
            if device not in ("cuda", "cpu"):
                raise ValueError(f"BRAINSTORM_DEVICE must be 'cuda' or 'cpu', got: {device!r}")
            config.device = device

        llm_timeout = get(BrainstormEnvironmentEnum.LLM_TIMEOUT)
        if llm_timeout is not None:
            try:
                config.llm_timeout = float(llm_timeout)
            except ValueError:
                raise ValueError(f"BRAINSTORM_LLM_TIMEOUT must be a number, got: {llm_timeout!r}")
            if config.llm_timeout <= 0:
                raise ValueError(f"BRAINSTORM_LLM_TIMEOUT must be positive, got: {llm_timeout!r}")

        session_dir = get(BrainstormEnvironmentEnum.SESSION_DIR)
        if session_dir:
            config.session_dir = session_dir

        log_level = get(BrainstormEnvironmentEnum.LOG_LEVEL)
        if log_level:
            log_level = log_level.upper()
            if not isinstance(logging.getLevelName(log_level), int):
                raise ValueError(f"BRAINSTORM_LOG_LEVEL is not a logging level: {log_level!r}")
            config.log_level = log_level

        port = get(BrainstormEnvironmentEnum.PORT)
        if port is not None:
            try:
                config.port = int(port)
            except ValueError:
                raise ValueError(f"PORT must be an integer, got: {port!r}")

        return config
