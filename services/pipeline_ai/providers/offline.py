from __future__ import annotations

from typing import Sequence

from .base import ChatMessage, ProviderError


class OfflineProvider:
	"""Never reaches a model; every generation takes the template fallback."""

	name = "offline"

	async def complete(
		self,
		messages: Sequence[ChatMessage],
		*,
		model: str,
		temperature: float,
		max_tokens: int,
	) -> str:
		raise ProviderError("offline provider: no completion backend configured")
