from __future__ import annotations

from typing import Sequence

from openai import AsyncOpenAI, OpenAIError

from .base import ChatMessage, ProviderError


class OpenAIChatProvider:
	name = "openai"

	def __init__(self, *, api_key: str | None, base_url: str | None = None) -> None:
		self._api_key = api_key
		self._base_url = base_url
		self._client: AsyncOpenAI | None = None

	def _get_client(self) -> AsyncOpenAI:
		if not self._api_key:
			raise ProviderError("OPENAI_API_KEY is not set")
		if self._client is None:
			self._client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
		return self._client

	async def complete(
		self,
		messages: Sequence[ChatMessage],
		*,
		model: str,
		temperature: float,
		max_tokens: int,
	) -> str:
		client = self._get_client()
		try:
			completion = await client.chat.completions.create(
				model=model,
				messages=[m.as_dict() for m in messages],
				temperature=temperature,
				max_tokens=max_tokens,
			)
		except OpenAIError as e:
			raise ProviderError(f"OpenAI request failed: {e}") from e

		if not completion.choices:
			return ""
		return completion.choices[0].message.content or ""
