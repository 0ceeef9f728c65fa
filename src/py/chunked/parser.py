from typing import NoReturn
from mypy_extensions import i64, mypyc_attr
from .model import (
	Phase,
	DecoderState,
	Trailer,
	ChunkedError,
	MalformedSizeLine,
	SizeOverflow,
	MalformedTerminator,
	MalformedTrailer,
	IncompleteChunk,
	READING_SIZE,
	READING_TERMINATOR,
	READING_TRAILER,
	DONE,
)
from .utils.io import CR, LF, SP, HT, parseChunkSize
from .utils.logging import LogLevel, logged, debug
from .utils import logging
from . import config


@mypyc_attr(allow_interpreted_subclasses=True)
class ChunkParser:
	"""A sans-I/O parser for the chunked transfer coding. Bytes are given
	through `feed()`, which consumes at most one line of framing or a slice
	of chunk data at a time and tells how many bytes were read."""

	__slots__ = [
		"state",
		"line",
		"offset",
		"sawCR",
		"error",
		"trailers",
		"trailerSize",
		"keepTrailers",
		"maxLineLength",
		"maxChunkSize",
		"maxTrailerSize",
	]

	def __init__(
		self,
		*,
		keepTrailers: bool = False,
		maxLineLength: int | None = None,
		maxChunkSize: int | None = None,
		maxTrailerSize: int | None = None,
	) -> None:
		self.state: DecoderState = READING_SIZE
		self.line: bytearray = bytearray()
		self.offset: i64 = 0
		self.sawCR: bool = False
		self.error: ChunkedError | None = None
		self.trailers: list[Trailer] = []
		self.trailerSize: int = 0
		self.keepTrailers: bool = keepTrailers
		self.maxLineLength: int = (
			config.MAX_LINE_LENGTH if maxLineLength is None else maxLineLength
		)
		self.maxChunkSize: int = (
			config.MAX_CHUNK_SIZE if maxChunkSize is None else maxChunkSize
		)
		self.maxTrailerSize: int = (
			config.MAX_TRAILER_SIZE if maxTrailerSize is None else maxTrailerSize
		)

	@property
	def phase(self) -> Phase:
		return self.state.phase

	@property
	def remaining(self) -> int:
		return self.state.remaining

	@property
	def isDone(self) -> bool:
		return self.state.phase is Phase.Done

	def reset(self) -> "ChunkParser":
		self.state = READING_SIZE
		self.line.clear()
		self.offset = 0
		self.sawCR = False
		self.error = None
		self.trailers = []
		self.trailerSize = 0
		return self

	def wants(self) -> int:
		"""Returns how many bytes can be read from a source without reading
		past the current phase."""
		phase = self.state.phase
		if phase is Phase.Done:
			return 0
		elif phase is Phase.ReadingChunkData:
			return self.state.remaining
		else:
			return 1

	def feed(
		self, chunk: bytes | bytearray, start: int = 0
	) -> tuple[memoryview | None, int]:
		"""Feeds data from `chunk`, starting at `start`. Returns the body data
		found (if any) and how many bytes were consumed. Nothing is consumed
		once the parser is done."""
		if self.error:
			raise self.error
		available: int = len(chunk) - start
		phase = self.state.phase
		if available <= 0 or phase is Phase.Done:
			return None, 0
		elif phase is Phase.ReadingChunkData:
			read = min(self.state.remaining, available)
			self.consume(read)
			return memoryview(chunk)[start : start + read], read
		elif phase is Phase.ReadingChunkTerminator:
			return None, self._feedTerminator(chunk[start])
		else:
			return None, self._feedLine(chunk, start)

	def consume(self, count: int) -> "ChunkParser":
		"""Advances the chunk data by `count` bytes that were delivered
		directly from the source."""
		remaining = self.state.remaining
		if self.state.phase is not Phase.ReadingChunkData:
			raise ValueError(f"Not reading chunk data: {self.state}")
		elif count < 0 or count > remaining:
			raise ValueError(f"Cannot consume {count} bytes, {remaining} left")
		self.offset += count
		remaining -= count
		self.state = (
			DecoderState(Phase.ReadingChunkData, remaining)
			if remaining
			else READING_TERMINATOR
		)
		return self

	def end(self) -> None:
		"""Signals the end of the source stream, raising an error unless the
		whole chunked body was parsed."""
		if self.error:
			raise self.error
		phase = self.state.phase
		if phase is Phase.Done:
			return None
		elif phase is Phase.ReadingSize:
			self.fail(MalformedSizeLine, "Stream ended before the end of the size line")
		elif phase is Phase.ReadingChunkData:
			self.fail(
				IncompleteChunk,
				f"Stream ended with {self.state.remaining} bytes of chunk data left",
			)
		elif phase is Phase.ReadingChunkTerminator:
			self.fail(MalformedTerminator, "Stream ended before the chunk terminator")
		else:
			self.fail(MalformedTrailer, "Stream ended before the end of the trailer")

	def fail(self, kind: type[ChunkedError], message: str) -> NoReturn:
		"""Latches the parser into a failed state and raises the error."""
		err = kind(message, self.state.phase, self.offset)
		logging.error(message, kind.__name__, state=str(self.state), offset=self.offset)
		self.error = err
		raise err

	# =========================================================================
	# HELPERS
	# =========================================================================

	def _feedTerminator(self, b: int) -> int:
		self.offset += 1
		if b == LF:
			self.sawCR = False
			self.state = READING_SIZE
		elif b == CR and not self.sawCR:
			self.sawCR = True
		else:
			self.fail(
				MalformedTerminator,
				f"Expected CRLF after chunk data, got {bytes((b,))!r}",
			)
		return 1

	def _feedLine(self, chunk: bytes | bytearray, start: int) -> int:
		i = chunk.find(b"\n", start)
		end = len(chunk) if i == -1 else i + 1
		read = end - start
		self.line += chunk[start:end]
		self.offset += read
		if len(self.line) > self.maxLineLength:
			self.fail(
				MalformedSizeLine
				if self.state.phase is Phase.ReadingSize
				else MalformedTrailer,
				f"Line exceeds {self.maxLineLength} bytes",
			)
		elif i == -1:
			return read
		# We have a complete line, without its LF and optional CR
		n = len(self.line) - 1
		if n and self.line[n - 1] == CR:
			n -= 1
		elif logged(LogLevel.Debug):
			debug("Bare LF line terminator", offset=self.offset, state=str(self.state))
		line = bytes(self.line[:n])
		self.line.clear()
		if self.state.phase is Phase.ReadingSize:
			self._parseSize(line)
		else:
			self._parseTrailer(line)
		return read

	def _parseSize(self, line: bytes) -> None:
		try:
			size = parseChunkSize(line, self.maxChunkSize)
		except OverflowError as e:
			self.fail(SizeOverflow, str(e))
		except ValueError as e:
			self.fail(MalformedSizeLine, f"{e}: {line[:64]!r}")
		if logged(LogLevel.Debug):
			debug("Chunk", size=size, offset=self.offset)
		self.state = (
			DecoderState(Phase.ReadingChunkData, size) if size else READING_TRAILER
		)

	def _parseTrailer(self, line: bytes) -> None:
		if not line:
			self.state = DONE
			return None
		self.trailerSize += len(line)
		if self.trailerSize > self.maxTrailerSize:
			self.fail(MalformedTrailer, f"Trailer exceeds {self.maxTrailerSize} bytes")
		if line[0] in (SP, HT):
			# That's an obsolete line folding, which continues the previous field
			if self.trailerSize == len(line):
				self.fail(MalformedTrailer, "Continuation line without a trailer field")
			if self.keepTrailers and self.trailers:
				last = self.trailers[-1]
				value = line.decode("latin-1").strip()
				self.trailers[-1] = Trailer(
					last.name, f"{last.value} {value}" if last.value else value
				)
			return None
		i = line.find(b":")
		if i <= 0 or any(_ in (SP, HT) for _ in line[:i]):
			self.fail(MalformedTrailer, f"Invalid trailer field: {line[:64]!r}")
		if self.keepTrailers:
			self.trailers.append(
				Trailer(
					line[:i].decode("latin-1"),
					line[i + 1 :].decode("latin-1").strip(),
				)
			)

	def __str__(self) -> str:
		return f"ChunkParser({self.state})"


# EOF
