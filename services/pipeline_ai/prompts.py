from __future__ import annotations

from typing import TYPE_CHECKING, List

from .providers.base import ChatMessage

if TYPE_CHECKING:
	from .generator import PipelineRequest


SYSTEM_PROMPT = "You are a DevOps expert. Generate ONLY valid YAML."

REQUIREMENTS = [
	"Include build, test, and deploy stages",
	"Use best practices for the specific platform",
	"Include appropriate caching strategies",
	"Output ONLY valid YAML, no explanations",
]


def build_user_prompt(request: "PipelineRequest") -> str:
	lines = [
		f"Generate a CI/CD pipeline configuration for {request.platform}.",
		f"Programming Language: {request.language}",
		f"Description: {request.description}",
	]
	if request.deployment_target:
		lines.append(f"Deployment Target: {request.deployment_target}")
	lines.append("")
	lines.append("Requirements:")
	lines.extend(f"- {item}" for item in REQUIREMENTS)
	return "\n".join(lines)


def build_messages(request: "PipelineRequest") -> List[ChatMessage]:
	return [
		ChatMessage(role="system", content=SYSTEM_PROMPT),
		ChatMessage(role="user", content=build_user_prompt(request)),
	]
