"""
HuggingFace Client - Model loading and inference wrapper

The text-generation backend behind the question generator, the response
classifier and the outline generator.

Responsibilities:
- Load model with optional 4-bit quantization
- Generate text completions from a PromptSpec
- Generate JSON-formatted completions with repair
- Handle CUDA errors

Design principles:
- Dependency injection (no singleton)
- Fail fast on critical errors (CUDA OOM, model load failure)
- Model-agnostic (formatting delegated to PromptFormatter)
"""

import logging
import time

import torch
from transformers import AutoModelForCausalLM, AutoTokenizer, BitsAndBytesConfig

from brainstorm.utils.helpers import repair_json
from brainstorm.utils.prompt_builder import PromptSpec
from brainstorm.utils.prompt_formatter import PromptFormatter

logger = logging.getLogger(__name__)

DEVICE_CUDA = "cuda"
DEVICE_CPU = "cpu"
DEVICE_MAP_AUTO = "auto"


class HuggingFaceClient:
    """Wrapper for HuggingFace causal LM inference"""

    def __init__(
        self,
        model_name: str,
        load_in_4bit: bool = True,
        device: str = DEVICE_CUDA
    ) -> None:
        """
        Initialize model and tokenizer

        Args:
            model_name: HuggingFace model identifier
            load_in_4bit: Use 4-bit quantization (CUDA only)
            device: "cuda" or "cpu"

        Raises:
            RuntimeError: If CUDA requested but not available
            Exception: If model loading fails
        """
        self.model_name = model_name
        self.device = device
        self.model = None
        self.tokenizer = None

        if device == DEVICE_CUDA and not torch.cuda.is_available():
            raise RuntimeError("CUDA requested but not available. Check nvidia-smi.")

        logger.info(f"Loading model: {model_name} (device={device}, 4bit={load_in_4bit})")

        quantization_config = None
        if load_in_4bit and device == DEVICE_CUDA:
            quantization_config = BitsAndBytesConfig(
                load_in_4bit=True,
                bnb_4bit_quant_type="nf4",
                bnb_4bit_compute_dtype=torch.bfloat16,
                bnb_4bit_use_double_quant=True
            )
            logger.info("Using NF4 quantization with bfloat16 compute")

        try:
            self.tokenizer = AutoTokenizer.from_pretrained(model_name)
            if self.tokenizer.pad_token is None:
                if self.tokenizer.eos_token is not None:
                    self.tokenizer.pad_token = self.tokenizer.eos_token
                else:
                    self.tokenizer.add_special_tokens({'pad_token': '[PAD]'})
                    logger.warning("Added new [PAD] token as pad_token")
        except Exception as e:
            logger.error(f"Failed to load tokenizer: {e}")
            raise

        self.formatter = PromptFormatter(model_name, self.tokenizer)

        try:
            self.model = AutoModelForCausalLM.from_pretrained(
                model_name,
                quantization_config=quantization_config,
                device_map=DEVICE_MAP_AUTO if device == DEVICE_CUDA else None,
                torch_dtype=torch.bfloat16 if device == DEVICE_CUDA else torch.float32
            )
        except torch.cuda.OutOfMemoryError:
            logger.error("CUDA Out of Memory during model loading")
            raise
        except Exception as e:
            logger.error(f"Failed to load model: {e}")
            raise

        self.model.eval()
        self._log_cuda_memory("after model load")
        logger.info("HuggingFace client initialized successfully")

    def _log_cuda_memory(self, stage: str) -> None:
        if self.device == DEVICE_CUDA and torch.cuda.is_available():
            allocated = torch.cuda.memory_allocated() / 1e9
            reserved = torch.cuda.memory_reserved() / 1e9
            logger.debug(f"GPU memory {stage}: {allocated:.2f}GB allocated, {reserved:.2f}GB reserved")

    def is_loaded(self) -> bool:
        return self.model is not None and self.tokenizer is not None

    def generate(
        self,
        spec: PromptSpec,
        max_tokens: int = 300,
        temperature: float = 0.7
    ) -> str:
        """
        Generate text completion for a prompt

        Args:
            spec: System + user prompt
            max_tokens: Maximum new tokens
            temperature: Sampling temperature (0.0 = greedy)

        Returns:
            str: Generated text (prompt tokens excluded)

        Raises:
            RuntimeError: If model not loaded
            torch.cuda.OutOfMemoryError: If GPU runs out of memory
        """
        if not self.is_loaded():
            raise RuntimeError("Model not loaded")

        start_time = time.time()
        prompt = self.formatter.format(spec)

        inputs = self.tokenizer(prompt, return_tensors="pt")
        if self.device == DEVICE_CUDA:
            inputs = inputs.to(DEVICE_CUDA)
        prompt_tokens = inputs.input_ids.shape[1]

        try:
            with torch.no_grad():
                outputs = self.model.generate(
                    inputs.input_ids,
                    attention_mask=inputs.attention_mask,
                    max_new_tokens=max_tokens,
                    temperature=temperature if temperature > 0 else None,
                    do_sample=temperature > 0,
                    pad_token_id=self.tokenizer.pad_token_id
                )
        except torch.cuda.OutOfMemoryError:
            logger.error(f"CUDA OOM during generation (prompt tokens: {prompt_tokens}, max new: {max_tokens})")
            raise

        generated_ids = outputs[0][prompt_tokens:]
        text = self.tokenizer.decode(generated_ids, skip_special_tokens=True)

        elapsed_ms = (time.time() - start_time) * 1000
        logger.debug(
            f"Generated {len(generated_ids)} tokens from {prompt_tokens} prompt tokens "
            f"in {elapsed_ms:.0f}ms"
        )
        return text.strip()

    def generate_json(
        self,
        spec: PromptSpec,
        max_tokens: int = 200,
        temperature: float = 0.0
    ) -> str:
        """
        Generate a JSON object completion with basic repair

        Note: Returns a string, not parsed JSON. Caller must json.loads().
        """
        text = self.generate(spec, max_tokens=max_tokens, temperature=temperature)
        return repair_json(text)
