from __future__ import annotations

import asyncio
import codecs
import json
import sys
import threading
from typing import Any, AsyncIterator, BinaryIO, Dict, List, Optional, TextIO


DEFAULT_MAX_MESSAGE_CHARS = 1024 * 1024
READ_CHUNK_BYTES = 64 * 1024


class LineBuffer:
	"""
	Accumulates decoded stdin text and splits it into newline-terminated messages.

	Lines are trimmed; whitespace-only lines are dropped. A line that grows past
	``max_message_chars`` is discarded up to and including its terminator.
	"""

	def __init__(self, *, max_message_chars: Optional[int] = DEFAULT_MAX_MESSAGE_CHARS, log: TextIO | None = None) -> None:
		self._buffer = ""
		self._discarding = False
		self._max = max_message_chars or None
		self._log = log or sys.stderr
		self.dropped = 0

	@property
	def pending(self) -> int:
		return len(self._buffer)

	def feed(self, chunk: str) -> List[str]:
		self._buffer += chunk
		lines: List[str] = []
		while True:
			index = self._buffer.find("\n")
			if index == -1:
				break
			line = self._buffer[:index]
			self._buffer = self._buffer[index + 1 :]

			if self._discarding:
				self._discarding = False
				continue
			if self._max is not None and len(line) > self._max:
				self._overflow(len(line))
				continue
			line = line.strip()
			if line:
				lines.append(line)

		if self._discarding:
			self._buffer = ""
		elif self._max is not None and len(self._buffer) > self._max:
			self._overflow(len(self._buffer))
			self._buffer = ""
			self._discarding = True
		return lines

	def _overflow(self, size: int) -> None:
		self.dropped += 1
		print(
			f"FRAMING_OVERFLOW: discarding message of {size}+ chars (limit {self._max})",
			file=self._log,
			flush=True,
		)


class LineFraming:
	"""
	Newline-delimited JSON framing over a pair of binary streams:
	  <compact JSON>\n
	"""

	def __init__(
		self,
		reader: BinaryIO | None = None,
		writer: BinaryIO | None = None,
		*,
		max_message_chars: Optional[int] = DEFAULT_MAX_MESSAGE_CHARS,
		log: TextIO | None = None,
	) -> None:
		self._reader = reader or sys.stdin.buffer
		self._writer = writer or sys.stdout.buffer
		self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
		self.buffer = LineBuffer(max_message_chars=max_message_chars, log=log)

	async def messages(self) -> AsyncIterator[str]:
		loop = asyncio.get_running_loop()
		chunks: asyncio.Queue = asyncio.Queue()
		# Daemon thread: a blocking stdin read must not hold the interpreter open at exit.
		threading.Thread(target=self._pump, args=(loop, chunks), name="stdin-reader", daemon=True).start()
		while True:
			raw = await chunks.get()
			if isinstance(raw, Exception):
				raise raw
			if not raw:
				# Unterminated residue at EOF is not a message.
				self._decoder.decode(b"", final=True)
				return
			for line in self.buffer.feed(self._decoder.decode(raw)):
				yield line

	def write_message(self, message: Dict[str, Any]) -> None:
		raw = json.dumps(message, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
		self._writer.write(raw + b"\n")
		self._writer.flush()

	def _pump(self, loop: asyncio.AbstractEventLoop, chunks: asyncio.Queue) -> None:
		while True:
			try:
				raw = self._read_chunk()
			except (OSError, ValueError) as exc:
				loop.call_soon_threadsafe(chunks.put_nowait, exc)
				return
			loop.call_soon_threadsafe(chunks.put_nowait, raw)
			if not raw:
				return

	def _read_chunk(self) -> bytes:
		read1 = getattr(self._reader, "read1", None)
		if read1 is not None:
			return read1(READ_CHUNK_BYTES)
		return self._reader.read(READ_CHUNK_BYTES)
