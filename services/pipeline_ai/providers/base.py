from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence


@dataclass(frozen=True)
class ChatMessage:
	role: str
	content: str

	def as_dict(self) -> dict[str, str]:
		return {"role": self.role, "content": self.content}


class ProviderError(RuntimeError):
	"""Raised when a completion backend cannot produce a reply (no credential, network, API error)."""


class CompletionProvider(Protocol):
	name: str

	async def complete(
		self,
		messages: Sequence[ChatMessage],
		*,
		model: str,
		temperature: float,
		max_tokens: int,
	) -> str:
		...
