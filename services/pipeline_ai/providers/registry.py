from __future__ import annotations

from ..config import Settings
from .base import CompletionProvider
from .offline import OfflineProvider
from .openai_chat import OpenAIChatProvider


def get_provider(settings: Settings) -> CompletionProvider:
	key = (settings.provider or "").strip().lower()
	if key in ("openai", ""):
		return OpenAIChatProvider(api_key=settings.api_key, base_url=settings.base_url)
	if key == "offline":
		return OfflineProvider()
	raise ValueError(f"Unknown PIPELINE_AI_PROVIDER: {settings.provider!r}")
