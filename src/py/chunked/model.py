from typing import NamedTuple
from enum import Enum

# -----------------------------------------------------------------------------
#
# STATE
#
# -----------------------------------------------------------------------------


class Phase(Enum):
	"""The phases a chunked body goes through while being decoded."""

	ReadingSize = 0
	ReadingChunkData = 1
	ReadingChunkTerminator = 2
	ReadingTrailer = 3
	Done = 4


class DecoderState(NamedTuple):
	"""The decoder state, `remaining` is only relevant when reading
	chunk data."""

	phase: Phase
	remaining: int = 0

	@property
	def isDone(self) -> bool:
		return self.phase is Phase.Done

	def __str__(self) -> str:
		return (
			f"{self.phase.name}({self.remaining})"
			if self.phase is Phase.ReadingChunkData
			else self.phase.name
		)


READING_SIZE = DecoderState(Phase.ReadingSize)
READING_TERMINATOR = DecoderState(Phase.ReadingChunkTerminator)
READING_TRAILER = DecoderState(Phase.ReadingTrailer)
DONE = DecoderState(Phase.Done)


class Trailer(NamedTuple):
	name: str
	value: str


# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------


class ChunkedError(ValueError):
	"""Base class for errors raised when decoding a chunked stream. Errors
	are fatal to the decoder that raised them."""

	def __init__(
		self,
		message: str,
		phase: Phase | None = None,
		offset: int | None = None,
	):
		super().__init__(message)
		self.message: str = message
		self.phase: Phase | None = phase
		self.offset: int | None = offset

	def __str__(self) -> str:
		return (
			f"{self.message} (at byte {self.offset})"
			if self.offset is not None
			else self.message
		)


class MalformedSizeLine(ChunkedError):
	"""The chunk size line has no hex digits, contains a non-hex character,
	is too long or is not terminated before the end of the stream."""


class SizeOverflow(ChunkedError):
	"""The chunk size exceeds the maximum representable chunk length."""


class MalformedTerminator(ChunkedError):
	"""The chunk data is not followed by CRLF (or LF)."""


class MalformedTrailer(ChunkedError):
	"""The trailer section is invalid or not terminated."""


class IncompleteChunk(ChunkedError):
	"""The stream ended in the middle of the chunk data."""


# EOF
