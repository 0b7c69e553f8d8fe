from __future__ import annotations

from typing import Any, Dict, List


LANGUAGES: List[str] = ["nodejs", "python", "go", "ruby", "java", "rust", "php"]
PLATFORMS: List[str] = ["github-actions", "gitlab-ci", "circleci", "jenkins", "aws-codepipeline"]

DEFAULT_LANGUAGE = "nodejs"
DEFAULT_PLATFORM = "github-actions"


def generate_pipeline_schema() -> Dict[str, Any]:
	return {
		"type": "object",
		"properties": {
			"description": {"type": "string"},
			"language": {"type": "string", "enum": list(LANGUAGES)},
			"platform": {"type": "string", "enum": list(PLATFORMS)},
			"deploymentTarget": {"type": "string"},
		},
		"required": ["description"],
	}


async def list_languages(params: Dict[str, Any]) -> Dict[str, Any]:
	return {"languages": list(LANGUAGES)}


async def list_platforms(params: Dict[str, Any]) -> Dict[str, Any]:
	return {"platforms": list(PLATFORMS)}
