from __future__ import annotations

import asyncio
import json
import sys
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, TextIO

from .framing import LineFraming


JsonObject = Dict[str, Any]

JSONRPC_VERSION = "2.0"
PARSE_ERROR = -32700
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603


@dataclass(frozen=True)
class Method:
	name: str
	description: str
	handler: Callable[[JsonObject], Awaitable[Any]]
	input_schema: Optional[JsonObject] = None
	bounded: bool = False


class MCPServer:
	def __init__(
		self,
		*,
		name: str,
		version: str = "0.1.0",
		methods: Optional[List[Method]] = None,
		report_parse_errors: bool = False,
		max_inflight: int = 16,
		log: TextIO | None = None,
	) -> None:
		self.name = name
		self.version = version
		self.report_parse_errors = report_parse_errors
		self._methods = {method.name: method for method in (methods or [])}
		self._limit = asyncio.Semaphore(max_inflight) if max_inflight > 0 else None
		self._log = log or sys.stderr
		self._tasks: Set[asyncio.Task[None]] = set()

	async def serve(self, framing: LineFraming) -> None:
		"""Frame messages until EOF, one task per message, then drain outstanding tasks."""
		async for line in framing.messages():
			task = asyncio.create_task(self._respond(framing, line))
			self._tasks.add(task)
			task.add_done_callback(self._tasks.discard)
		if self._tasks:
			await asyncio.gather(*list(self._tasks))

	async def _respond(self, framing: LineFraming, line: str) -> None:
		response = await self.handle_message(line)
		if response is not None:
			framing.write_message(response)

	async def handle_message(self, text: str) -> Optional[JsonObject]:
		try:
			request = json.loads(text)
		except (ValueError, RecursionError) as exc:
			return self._drop(f"invalid JSON ({exc})")
		if not isinstance(request, dict):
			return self._drop("request must be a JSON object")

		method = request.get("method")
		request_id = request.get("id")
		params = request.get("params") or {}
		if not isinstance(params, dict):
			params = {}

		try:
			result = await self._dispatch(method, params)
		except MethodNotFound as exc:
			return self._error(request_id, METHOD_NOT_FOUND, str(exc))
		except Exception as exc:
			print(f"MCP_HANDLER_ERROR: {method} id={request_id!r}: {exc!r}", file=self._log, flush=True)
			return self._error(request_id, INTERNAL_ERROR, str(exc) or "Internal error")
		return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}

	async def _dispatch(self, method: Any, params: JsonObject) -> Any:
		if method == "tools/list":
			return self._tools_list(params)
		registered = self._methods.get(method) if isinstance(method, str) else None
		if registered is None:
			raise MethodNotFound(f"Method not found: {'undefined' if method is None else method}")
		if registered.bounded and self._limit is not None:
			# Only calls that leave the process hold a slot.
			async with self._limit:
				return await registered.handler(params)
		return await registered.handler(params)

	def _tools_list(self, params: JsonObject) -> JsonObject:
		_ = params  # cursor not implemented
		tools = []
		for method in self._methods.values():
			entry: JsonObject = {"name": method.name, "description": method.description}
			if method.input_schema is not None:
				entry["inputSchema"] = method.input_schema
			tools.append(entry)
		return {"tools": tools}

	def _drop(self, reason: str) -> Optional[JsonObject]:
		print(f"MCP_DROP: {reason}", file=self._log, flush=True)
		if not self.report_parse_errors:
			return None
		return self._error(None, PARSE_ERROR, "Parse error")

	@staticmethod
	def _error(request_id: Any, code: int, message: str) -> JsonObject:
		return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": {"code": code, "message": message}}


class MethodNotFound(LookupError):
	pass
