"""Inference collaborator: one system/user prompt pair in, one text payload out."""

from __future__ import annotations

from typing import Protocol

import openai
from openai import AsyncOpenAI

from issue_cost_estimator.config import get_settings
from issue_cost_estimator.errors import InferenceError
from issue_cost_estimator.logging import get_logger

logger = get_logger(__name__)


class InferenceClient(Protocol):
    """Anything that can answer a chat prompt with a JSON text payload."""

    async def complete(
        self,
        system: str,
        user: str,
        *,
        model: str,
        temperature: float,
    ) -> str: ...


class OpenAIInferenceClient:
    """Chat completions against the OpenAI API in JSON mode.

    Usage:
        client = OpenAIInferenceClient()
        text = await client.complete(system, user, model="gpt-4o-mini", temperature=0.3)
    """

    def __init__(self, api_key: str | None = None, *, client: AsyncOpenAI | None = None) -> None:
        """Initialize the inference client.

        A missing key is only reported when a completion is requested, so the
        server still starts (and answers health checks) without one.

        Args:
            api_key: OpenAI key. If not provided, uses OPENAI_API_KEY from settings.
            client: Pre-built SDK client (mainly for tests)
        """
        if client is None and not api_key:
            api_key = get_settings().openai_api_key
        self._api_key = api_key or None
        if client is None and self._api_key is None:
            logger.warning("No OPENAI_API_KEY configured; estimation requests will fail")
        self._client = client

    def _sdk(self) -> AsyncOpenAI:
        if self._client is None:
            if self._api_key is None:
                raise InferenceError(
                    "OpenAI API key required. Set OPENAI_API_KEY environment variable.",
                    retryable=False,
                )
            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def complete(
        self,
        system: str,
        user: str,
        *,
        model: str,
        temperature: float,
    ) -> str:
        """Run one chat completion and return the message content.

        Raises:
            InferenceError: On any API or transport failure, or an empty reply
        """
        client = self._sdk()
        try:
            completion = await client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                response_format={"type": "json_object"},
                temperature=temperature,
            )
        except openai.APIError as e:
            raise InferenceError(f"OpenAI request failed: {e}") from e

        if not completion.choices or not completion.choices[0].message.content:
            raise InferenceError("Empty response from OpenAI")
        return completion.choices[0].message.content

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.close()
