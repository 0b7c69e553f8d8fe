from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any, Dict, Optional, TextIO

from .catalog import DEFAULT_LANGUAGE, DEFAULT_PLATFORM
from .config import Settings
from .prompts import build_messages
from .providers.base import CompletionProvider
from .templates import render_fallback


EMPTY_COMPLETION = "Failed to generate pipeline"


def _str_or_default(raw: Any, default: str) -> str:
	if raw is None:
		return default
	s = str(raw).strip()
	return s or default


@dataclass(frozen=True)
class PipelineRequest:
	description: str
	language: str = DEFAULT_LANGUAGE
	platform: str = DEFAULT_PLATFORM
	deployment_target: Optional[str] = None

	@classmethod
	def from_params(cls, params: Dict[str, Any]) -> "PipelineRequest":
		description = params.get("description")
		if description is None or not str(description).strip():
			raise ValueError("generate_pipeline: 'description' is required")
		target = params.get("deploymentTarget")
		return cls(
			description=str(description).strip(),
			language=_str_or_default(params.get("language"), DEFAULT_LANGUAGE),
			platform=_str_or_default(params.get("platform"), DEFAULT_PLATFORM),
			deployment_target=(str(target).strip() or None) if target is not None else None,
		)


class PipelineGenerator:
	def __init__(self, provider: CompletionProvider, settings: Settings, *, log: TextIO | None = None) -> None:
		self._provider = provider
		self._settings = settings
		self._log = log or sys.stderr

	async def generate(self, request: PipelineRequest) -> str:
		try:
			text = await self._provider.complete(
				build_messages(request),
				model=self._settings.model,
				temperature=self._settings.temperature,
				max_tokens=self._settings.max_tokens,
			)
		except Exception as e:
			print(
				f"PIPELINE_AI_FALLBACK: {self._provider.name} failed ({e}); "
				f"using template for platform={request.platform!r} language={request.language!r}",
				file=self._log,
				flush=True,
			)
			return render_fallback(request.language, request.platform, request.deployment_target)
		return text or EMPTY_COMPLETION

	async def handle(self, params: Dict[str, Any]) -> str:
		return await self.generate(PipelineRequest.from_params(params))
