from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping


ROOT = Path(__file__).resolve().parents[2]
ENV_FILE = ROOT / "config" / "secrets.env"

_TRUE = ("1", "true", "yes", "on")


def _read_env_file(path: Path) -> dict[str, str]:
	env: dict[str, str] = {}
	for raw_line in path.read_text(encoding="utf-8").splitlines():
		line = raw_line.strip()
		if not line or line.startswith("#"):
			continue
		if "=" not in line:
			raise ValueError(f"Invalid env line (no '='): {raw_line}")
		key, value = line.split("=", 1)
		env[key.strip()] = value.strip()
	return env


def load_env(path: Path | None = None, environ: Mapping[str, str] | None = None) -> dict[str, str]:
	"""File values first, process environment on top. A missing file is not an error."""
	env_path = path or ENV_FILE
	env: dict[str, str] = {}
	if env_path.exists():
		env.update(_read_env_file(env_path))
	env.update(os.environ if environ is None else environ)
	return env


def _int(env: Mapping[str, str], key: str, default: int) -> int:
	raw = (env.get(key) or "").strip()
	if not raw:
		return default
	try:
		value = int(raw)
	except ValueError as exc:
		raise ValueError(f"{key} must be an integer (got {raw!r})") from exc
	if value < 0:
		raise ValueError(f"{key} must be >= 0 (got {value})")
	return value


def _float(env: Mapping[str, str], key: str, default: float) -> float:
	raw = (env.get(key) or "").strip()
	if not raw:
		return default
	try:
		return float(raw)
	except ValueError as exc:
		raise ValueError(f"{key} must be a number (got {raw!r})") from exc


@dataclass(frozen=True)
class Settings:
	provider: str = "openai"
	api_key: str | None = None
	base_url: str | None = None
	model: str = "gpt-4o"
	temperature: float = 0.7
	max_tokens: int = 4000
	max_message_chars: int = 1024 * 1024
	max_inflight: int = 16
	report_parse_errors: bool = False

	@classmethod
	def from_env(cls, env: Mapping[str, str]) -> "Settings":
		return cls(
			provider=(env.get("PIPELINE_AI_PROVIDER") or "openai").strip().lower(),
			api_key=(env.get("OPENAI_API_KEY") or "").strip() or None,
			base_url=(env.get("OPENAI_BASE_URL") or "").strip() or None,
			model=(env.get("PIPELINE_AI_MODEL") or "gpt-4o").strip(),
			temperature=_float(env, "PIPELINE_AI_TEMPERATURE", 0.7),
			max_tokens=_int(env, "PIPELINE_AI_MAX_TOKENS", 4000),
			max_message_chars=_int(env, "PIPELINE_AI_MAX_MESSAGE_CHARS", 1024 * 1024),
			max_inflight=_int(env, "PIPELINE_AI_MAX_INFLIGHT", 16),
			report_parse_errors=(env.get("PIPELINE_AI_REPORT_PARSE_ERRORS") or "").strip().lower() in _TRUE,
		)
