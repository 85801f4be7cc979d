"""
LLM clients for UMKM Strategi.

The architecture is AI-agnostic:
- LLMClient: abstract Protocol (interface)
- OpenAIClient: OpenAI-compatible implementation (OpenAI, Grok, local gateways)

Usage:
    from llm import get_llm_client
    client = get_llm_client()
    if client is not None:
        response = client.complete(messages)
"""

from typing import Optional, Protocol, runtime_checkable
import time
import logging

from openai import OpenAI

from config import Settings, settings as default_settings
from errors import AiProviderError
from llm.prompts import REPAIR_PROMPT

logger = logging.getLogger(__name__)


@runtime_checkable
class LLMClient(Protocol):
    """
    Abstract LLM client interface.

    Every implementation exposes `model` and these two calls.
    """

    model: str

    def complete(
        self,
        messages: list[dict],
        temperature: float = 0.3,
        max_tokens: int = 2500
    ) -> str:
        """
        Sends messages to the LLM and returns the text answer.

        Args:
            messages: [{role, content}, ...]
            temperature: creativity (0.0 - 1.0)
            max_tokens: answer token cap

        Returns:
            str: raw text answer
        """
        ...

    def complete_with_repair(
        self,
        messages: list[dict],
        temperature: float = 0.3,
        max_tokens: int = 2500
    ) -> str:
        """
        Same as complete(), asking once more for valid JSON if the first answer has none.
        """
        ...


class OpenAIClient:
    """
    Client for OpenAI-compatible APIs.

    Features:
    - JSON mode (`response_format`), switchable for gateways without it
    - Retry with exponential backoff
    - One deadline per plan request, shared by retries and the repair call;
      expiry raises AiProviderError
    - Custom base_url
    """

    def __init__(self, config: Settings = default_settings):
        self.client = OpenAI(
            api_key=config.openai_api_key,
            base_url=config.openai_base_url
        )
        self.model = config.openai_model
        self.max_retries = config.llm_max_retries
        self.timeout = config.llm_timeout_seconds
        self.total_timeout = config.llm_total_timeout_seconds
        self.json_mode = config.llm_json_mode

        logger.info(f"LLM client initialised (model={self.model}, base_url={config.openai_base_url})")

    def complete(
        self,
        messages: list[dict],
        temperature: float = 0.3,
        max_tokens: int = 2500
    ) -> str:
        """
        OpenAI request with retry, bounded by llm_total_timeout_seconds.

        Returns:
            str: raw answer text
        """
        return self._complete(messages, temperature, max_tokens, self._deadline())

    def complete_with_repair(
        self,
        messages: list[dict],
        temperature: float = 0.3,
        max_tokens: int = 2500
    ) -> str:
        """
        Request with one repair attempt if the first answer has no valid JSON.

        Both calls share one deadline.
        """
        from llm.response_parser import extract_json, JSONParseError

        deadline = self._deadline()
        response = self._complete(messages, temperature, max_tokens, deadline)

        try:
            extract_json(response)
            return response
        except JSONParseError:
            logger.warning("First answer has invalid JSON, asking for a fix")

        repair_messages = messages + [
            {"role": "assistant", "content": response},
            {"role": "user", "content": REPAIR_PROMPT}
        ]

        return self._complete(repair_messages, 0.0, max_tokens, deadline)

    def _deadline(self) -> float:
        return time.monotonic() + self.total_timeout

    def _complete(
        self,
        messages: list[dict],
        temperature: float,
        max_tokens: int,
        deadline: float,
    ) -> str:
        last_error = None
        attempts = self.max_retries + 1

        for attempt in range(attempts):
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break

            try:
                logger.debug(f"OpenAI request (attempt {attempt + 1}/{attempts}, {remaining:.0f}s left)")

                start_time = time.monotonic()

                kwargs = {}
                if self.json_mode:
                    kwargs["response_format"] = {"type": "json_object"}

                response = self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    timeout=min(self.timeout, remaining),
                    **kwargs
                )

                elapsed = time.monotonic() - start_time
                content = response.choices[0].message.content or ""

                logger.info(f"OpenAI answer received in {elapsed:.1f}s ({len(content)} chars)")

                return content

            except Exception as e:
                last_error = e
                logger.warning(f"OpenAI error (attempt {attempt + 1}): {e}")

                if attempt + 1 == attempts:
                    logger.error(f"OpenAI: all attempts exhausted. Last error: {e}")
                    raise

                wait_time = 2 ** attempt  # Exponential backoff: 1, 2, 4...
                if time.monotonic() + wait_time >= deadline:
                    break
                logger.debug(f"Waiting {wait_time}s before retrying")
                time.sleep(wait_time)

        logger.error(f"OpenAI: {self.total_timeout}s budget exhausted. Last error: {last_error}")
        raise AiProviderError(
            f"AI tidak merespons dalam {self.total_timeout} detik"
        ) from last_error


# === Client factory ===

def get_llm_client(config: Settings = default_settings) -> Optional[LLMClient]:
    """
    Returns the configured LLM client.

    Returns:
        LLMClient, or None when no API key is configured (AI disabled)
    """
    if not config.openai_api_key:
        logger.info("LLM disabled (no OPENAI_API_KEY), local plans only")
        return None
    return OpenAIClient(config)
