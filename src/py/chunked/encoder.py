from typing import Any
from mypy_extensions import i64, mypyc_attr
from .utils.io import ByteSink, END, EOL, LAST_CHUNK, frameChunk, formatTrailers, writeAll
from .utils.logging import LogLevel, logged, debug, exception


# SEE: https://httpwg.org/specs/rfc9112.html#chunked.encoding
@mypyc_attr(allow_interpreted_subclasses=True)
class Encoder:
	"""Writes each block of data given to `write()` as one chunk to the
	sink. `finish()` must be called to write the last chunk, which the
	encoder does on exit when used as a context manager."""

	__slots__ = ["sink", "finished", "written", "chunks"]

	def __init__(self, sink: ByteSink) -> None:
		self.sink: ByteSink = sink
		self.finished: bool = False
		# Number of encoded bytes written to the sink
		self.written: i64 = 0
		self.chunks: i64 = 0

	@property
	def isFinished(self) -> bool:
		return self.finished

	def write(self, data: bytes | bytearray | memoryview) -> int:
		"""Writes `data` as a single chunk, returning its length. Empty
		data is ignored, as a zero-length chunk would end the body."""
		if self.finished:
			raise ValueError("Cannot write to a finished chunked body")
		view = memoryview(data).cast("B")
		if not len(view):
			return 0
		self.written += writeAll(self.sink, frameChunk(view))
		self.chunks += 1
		return len(view)

	def finish(
		self, trailers: dict[str, str] | list[tuple[str, str]] | None = None
	) -> int:
		"""Writes the last chunk, with the optional trailer fields, and
		returns the number of bytes written. Only the first call writes."""
		if self.finished:
			return 0
		end: bytes = (
			b"".join((LAST_CHUNK, formatTrailers(trailers), EOL)) if trailers else END
		)
		n = writeAll(self.sink, end)
		self.written += n
		self.finished = True
		if logged(LogLevel.Debug):
			debug("Finished chunked body", chunks=self.chunks, written=self.written)
		return n

	def flush(self) -> None:
		flush = getattr(self.sink, "flush", None)
		if flush:
			flush()

	def __enter__(self) -> "Encoder":
		return self

	def __exit__(self, type: Any, value: Any, traceback: Any) -> None:
		# We don't want to end a body that failed half-way as if it was complete
		if value is None:
			self.finish()
			self.flush()
		else:
			exception(value, f"Chunked body left unfinished after {self.chunks} chunks")

	def __repr__(self) -> str:
		return f"Encoder(chunks={self.chunks}, written={self.written}, finished={self.finished})"


def encode(*blocks: bytes) -> bytes:
	"""Encodes each of the given blocks as a chunk, followed by the last chunk."""
	return b"".join(frameChunk(_) for _ in blocks if _) + END


# EOF
