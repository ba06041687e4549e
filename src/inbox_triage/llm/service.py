"""Text generation service backed by an OpenAI chat model."""

import logging

from langchain_core.messages import HumanMessage
from langchain_openai import ChatOpenAI

from inbox_triage.config import settings

logger = logging.getLogger(__name__)


class LLMService:
    """
    Black-box ``generate(prompt, model_id) -> text`` wrapper.

    One ChatOpenAI client is created lazily per model id. Provider errors
    (rate limits, context length) are raised unchanged so the retry
    controller can inspect their messages.
    """

    def __init__(
        self,
        api_key: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> None:
        self._api_key = api_key
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._clients: dict[str, ChatOpenAI] = {}

    def _client(self, model_id: str) -> ChatOpenAI:
        if model_id not in self._clients:
            self._clients[model_id] = ChatOpenAI(
                model=model_id,
                api_key=self._api_key or settings.openai_api_key,
                temperature=(
                    self._temperature if self._temperature is not None else settings.temperature
                ),
                max_tokens=self._max_tokens or settings.max_tokens,
                # Retries are owned by inbox_triage.llm.retry
                max_retries=0,
            )
        return self._clients[model_id]

    def generate(self, prompt: str, model_id: str | None = None) -> str:
        """
        Send a prompt and return the model's raw text.

        Args:
            prompt: Full prompt text.
            model_id: Model to use. Defaults to settings.openai_model.

        Returns:
            Response content, stripped.
        """
        model_id = model_id or settings.openai_model
        logger.debug(f"Generating with {model_id} (prompt: {len(prompt)} chars)")

        response = self._client(model_id).invoke([HumanMessage(content=prompt)])
        content = response.content
        if not isinstance(content, str):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part)
                for part in content
            )
        return content.strip()
