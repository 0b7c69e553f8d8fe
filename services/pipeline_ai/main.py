#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, TextIO

from services.mcp_common.framing import LineFraming
from services.mcp_common.server import MCPServer, Method

from . import catalog
from .config import ENV_FILE, Settings, load_env
from .generator import PipelineGenerator
from .providers.base import CompletionProvider
from .providers.registry import get_provider


SERVER_NAME = "pipeline-ai"
SERVER_VERSION = "0.1.0"
BANNER = "Pipeline AI MCP Server running..."


def build_server(settings: Settings, provider: CompletionProvider | None = None, *, log: TextIO | None = None) -> MCPServer:
	generator = PipelineGenerator(provider or get_provider(settings), settings, log=log)
	return MCPServer(
		name=SERVER_NAME,
		version=SERVER_VERSION,
		methods=[
			Method(
				name="generate_pipeline",
				description="Generate a CI/CD pipeline configuration from natural language",
				handler=generator.handle,
				input_schema=catalog.generate_pipeline_schema(),
				bounded=True,
			),
			Method(
				name="list_languages",
				description="List supported programming languages",
				handler=catalog.list_languages,
			),
			Method(
				name="list_platforms",
				description="List supported CI/CD platforms",
				handler=catalog.list_platforms,
			),
		],
		report_parse_errors=settings.report_parse_errors,
		max_inflight=settings.max_inflight,
		log=log,
	)


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
	overrides = {}
	if args.provider:
		overrides["provider"] = args.provider.strip().lower()
	if args.model:
		overrides["model"] = args.model
	if args.max_inflight is not None:
		overrides["max_inflight"] = args.max_inflight
	if args.max_message_chars is not None:
		overrides["max_message_chars"] = args.max_message_chars
	if args.report_parse_errors:
		overrides["report_parse_errors"] = True
	for key in ("max_inflight", "max_message_chars"):
		if overrides.get(key, 0) < 0:
			raise ValueError(f"--{key.replace('_', '-')} must be >= 0")
	return replace(settings, **overrides)


async def _serve(server: MCPServer, settings: Settings) -> None:
	framing = LineFraming(max_message_chars=settings.max_message_chars)
	await server.serve(framing)


def main(argv: Optional[List[str]] = None) -> int:
	ap = argparse.ArgumentParser(description="Serve CI/CD pipeline generation over newline-delimited JSON-RPC on stdio.")
	ap.add_argument("--env-file", default=str(ENV_FILE), help="KEY=VALUE file read before the process environment")
	ap.add_argument("--provider", default="", help="Completion backend: openai | offline")
	ap.add_argument("--model", default="", help="Model name passed to the completion backend")
	ap.add_argument("--max-inflight", type=int, default=None, help="Concurrent generate_pipeline model calls (0 = unbounded)")
	ap.add_argument("--max-message-chars", type=int, default=None, help="Largest accepted request line (0 = unbounded)")
	ap.add_argument("--report-parse-errors", action="store_true", help="Reply -32700 to malformed lines instead of dropping them")
	args = ap.parse_args(argv)

	try:
		settings = _apply_overrides(Settings.from_env(load_env(Path(args.env_file))), args)
		server = build_server(settings)
	except ValueError as e:
		print(f"CONFIG_INVALID: {e}", file=sys.stderr, flush=True)
		return 2

	print(f"{BANNER} ({server.name} {server.version})", file=sys.stderr, flush=True)
	asyncio.run(_serve(server, settings))
	return 0


def run() -> None:
	try:
		raise SystemExit(main())
	except KeyboardInterrupt:
		raise SystemExit(130)
	except Exception as e:
		print(f"ERROR: {e}", file=sys.stderr)
		raise SystemExit(1)


if __name__ == "__main__":
	run()
