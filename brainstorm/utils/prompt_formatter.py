"""
Prompt Formatter - Turn a PromptSpec into model-ready text

Responsibilities:
- Detect model family from model name
- Render system + user text through the tokenizer chat template if available
- Fold the system text into the user turn for templates without a system role
- Fallback to manual formatting for known families

Design principles:
- Tokenizer template priority (most robust)
- Manual fallback for known families
- Generic passthrough for unknown models
"""

import logging
from typing import Optional

from brainstorm.utils.prompt_builder import PromptSpec

logger = logging.getLogger(__name__)


def merge_system_into_user(spec: PromptSpec) -> str:
    """Single-turn text for models that have no system role."""
    if not spec.system:
        return spec.user
    return f"{spec.system}\n\n{spec.user}"


class PromptFormatter:
    """Format prompts for specific model families"""

    # Manual single-turn formats; the system text is folded into the user turn
    MANUAL_FORMATS = {
        "mistral": lambda text: f"[INST] {text} [/INST]",
        "mixtral": lambda text: f"[INST] {text} [/INST]",
        "llama-2": lambda text: f"[INST] {text} [/INST]",
        "llama-3": lambda text: (
            "<|begin_of_text|><|start_header_id|>user<|end_header_id|>\n\n"
            f"{text}<|eot_id|><|start_header_id|>assistant<|end_header_id|>\n\n"
        ),
        "zephyr": lambda text: f"<|user|>\n{text}\n<|assistant|>\n",
        "phi": lambda text: f"<|user|>\n{text}<|end|>\n<|assistant|>\n",
    }

    FAMILY_MARKERS = (
        ("llama-3", ("llama-3", "llama3")),
        ("llama-2", ("llama-2", "llama2")),
        ("mixtral", ("mixtral",)),
        ("mistral", ("mistral",)),
        ("zephyr", ("zephyr",)),
        ("phi", ("phi",)),
    )

    def __init__(self, model_name: str, tokenizer=None):
        """
        Initialize formatter

        Args:
            model_name: HuggingFace model identifier
            tokenizer: Optional tokenizer with chat_template attribute
        """
        self.model_name = model_name
        self.tokenizer = tokenizer
        self.model_family = self._detect_model_family(model_name)

        self.has_chat_template = (
            tokenizer is not None and
            getattr(tokenizer, 'chat_template', None) is not None
        )

        if self.has_chat_template:
            logger.info(f"Using tokenizer chat template for {model_name}")
        elif self.model_family in self.MANUAL_FORMATS:
            logger.info(f"Using manual formatting for {self.model_family} family")
        else:
            logger.warning(f"No chat template or known format for {model_name}, using plain text")

    def _detect_model_family(self, model_name: str) -> str:
        # Order matters - most specific first
        name_lower = model_name.lower()
        for family, markers in self.FAMILY_MARKERS:
            if any(marker in name_lower for marker in markers):
                return family
        return "generic"

    def _apply_template(self, messages) -> Optional[str]:
        try:
            return self.tokenizer.apply_chat_template(
                messages,
                tokenize=False,
                add_generation_prompt=True
            )
        except Exception as e:
            logger.debug(f"Chat template rejected messages: {e}")
            return None

    def format(self, spec: PromptSpec) -> str:
        """
        Render a PromptSpec for the model.

        Priority:
        1. Tokenizer chat template with a system message
        2. Tokenizer chat template with system folded into the user turn
        3. Manual formatting for a known family
        4. Plain text

        Examples:
            >>> formatter = PromptFormatter("mistralai/Mistral-7B-Instruct-v0.2")
            >>> formatter.format(PromptSpec(system="Be brief.", user="Hi"))
            '[INST] Be brief.\\n\\nHi [/INST]'
        """
        merged = merge_system_into_user(spec)

        if self.has_chat_template:
            if spec.system:
                formatted = self._apply_template([
                    {"role": "system", "content": spec.system},
                    {"role": "user", "content": spec.user},
                ])
                if formatted is not None:
                    return formatted

            formatted = self._apply_template([{"role": "user", "content": merged}])
            if formatted is not None:
                return formatted

            logger.warning("Tokenizer chat template failed, falling back to manual formatting")

        if self.model_family in self.MANUAL_FORMATS:
            return self.MANUAL_FORMATS[self.model_family](merged)

        return merged

    def get_info(self) -> dict:
        return {
            "model_name": self.model_name,
            "model_family": self.model_family,
            "has_chat_template": self.has_chat_template,
            "formatting_method": (
                "tokenizer_template" if self.has_chat_template
                else "manual" if self.model_family in self.MANUAL_FORMATS
                else "none"
            )
        }
