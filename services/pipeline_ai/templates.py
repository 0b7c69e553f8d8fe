from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml


@dataclass(frozen=True)
class Toolchain:
	image: str
	install: str
	test: str
	build: str
	setup_action: Optional[str] = None
	setup_with: Dict[str, str] = field(default_factory=dict)


TOOLCHAINS: Dict[str, Toolchain] = {
	"nodejs": Toolchain(
		image="node:20",
		install="npm ci",
		test="npm test",
		build="npm run build --if-present",
		setup_action="actions/setup-node@v4",
		setup_with={"node-version": "20", "cache": "npm"},
	),
	"python": Toolchain(
		image="python:3.12",
		install="pip install -r requirements.txt",
		test="pytest",
		build="python -m build",
		setup_action="actions/setup-python@v5",
		setup_with={"python-version": "3.12", "cache": "pip"},
	),
	"go": Toolchain(
		image="golang:1.22",
		install="go mod download",
		test="go test ./...",
		build="go build ./...",
		setup_action="actions/setup-go@v5",
		setup_with={"go-version": "1.22"},
	),
	"ruby": Toolchain(
		image="ruby:3.3",
		install="bundle install",
		test="bundle exec rake test",
		build="bundle exec rake build",
		setup_action="ruby/setup-ruby@v1",
		setup_with={"ruby-version": "3.3", "bundler-cache": "true"},
	),
	"java": Toolchain(
		image="maven:3-eclipse-temurin-21",
		install="mvn -B dependency:resolve",
		test="mvn -B test",
		build="mvn -B package -DskipTests",
		setup_action="actions/setup-java@v4",
		setup_with={"distribution": "temurin", "java-version": "21", "cache": "maven"},
	),
	"rust": Toolchain(
		image="rust:1",
		install="cargo fetch",
		test="cargo test",
		build="cargo build --release",
		setup_action="dtolnay/rust-toolchain@stable",
	),
	"php": Toolchain(
		image="composer:2",
		install="composer install --no-interaction",
		test="vendor/bin/phpunit",
		build="composer dump-autoload --optimize",
		setup_action="shivammathur/setup-php@v2",
		setup_with={"php-version": "8.3"},
	),
}


def _toolchain(language: str) -> Toolchain:
	known = TOOLCHAINS.get(language)
	if known is not None:
		return known
	return Toolchain(
		image="alpine:latest",
		install='echo "Install"',
		test='echo "Test"',
		build=f'echo "Building {language}..."',
	)


def _dump(doc: Dict[str, Any]) -> str:
	return yaml.safe_dump(doc, sort_keys=False, default_flow_style=False, width=120)


def _github_actions(language: str, deployment_target: Optional[str]) -> Dict[str, Any]:
	tc = _toolchain(language)
	steps: List[Dict[str, Any]] = [{"uses": "actions/checkout@v4"}]
	if tc.setup_action:
		setup: Dict[str, Any] = {"name": f"Setup {language}", "uses": tc.setup_action}
		if tc.setup_with:
			setup["with"] = dict(tc.setup_with)
		steps.append(setup)
	steps.extend(
		[
			{"name": "Install dependencies", "run": tc.install},
			{"name": "Test", "run": tc.test},
			{"name": "Build", "run": tc.build},
		]
	)
	jobs: Dict[str, Any] = {"build": {"runs-on": "ubuntu-latest", "steps": steps}}
	if deployment_target:
		jobs["deploy"] = {
			"needs": "build",
			"if": "github.ref == 'refs/heads/main'",
			"runs-on": "ubuntu-latest",
			"steps": [
				{"uses": "actions/checkout@v4"},
				{"name": f"Deploy to {deployment_target}", "run": f'echo "Deploying to {deployment_target}..."'},
			],
		}
	return {
		"name": "CI/CD Pipeline",
		"on": {
			"push": {"branches": ["main", "develop"]},
			"pull_request": {"branches": ["main"]},
		},
		"jobs": jobs,
	}


def _gitlab_ci(language: str, deployment_target: Optional[str]) -> Dict[str, Any]:
	tc = _toolchain(language)
	stages = ["build", "test"]
	doc: Dict[str, Any] = {
		"stages": stages,
		"default": {"image": tc.image},
		"build": {"stage": "build", "script": [tc.install, tc.build]},
		"test": {"stage": "test", "script": [tc.install, tc.test]},
	}
	if deployment_target:
		stages.append("deploy")
		doc["deploy"] = {
			"stage": "deploy",
			"script": [f'echo "Deploying to {deployment_target}..."'],
			"rules": [{"if": '$CI_COMMIT_BRANCH == "main"'}],
		}
	return doc


def _generic(language: str, deployment_target: Optional[str]) -> Dict[str, Any]:
	stages = ["build", "test"]
	doc: Dict[str, Any] = {
		"stages": stages,
		"build": {"stage": "build", "script": [f'echo "Building {language}..."']},
		"test": {"stage": "test", "script": [f'echo "Testing {language}..."']},
	}
	if deployment_target:
		stages.append("deploy")
		doc["deploy"] = {"stage": "deploy", "script": [f'echo "Deploying to {deployment_target}..."']}
	return doc


def render_fallback(language: str, platform: str, deployment_target: Optional[str] = None) -> str:
	"""Deterministic pipeline YAML used when no model completion is available."""
	if platform == "github-actions":
		return _dump(_github_actions(language, deployment_target))
	if platform == "gitlab-ci":
		return _dump(_gitlab_ci(language, deployment_target))
	return _dump(_generic(language, deployment_target))
