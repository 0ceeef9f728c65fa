import io
from typing import Any
from .model import Phase, DecoderState, Trailer
from .parser import ChunkParser
from .utils.io import ByteSource
from .utils.logging import warning


class Decoder(io.RawIOBase):
	"""Reads a chunked body from `source` and returns the dechunked data.

	The decoder never reads past the end of the chunked body: size lines,
	terminators and trailers are read one byte at a time (or peeked, when the
	source supports it) while chunk data is read straight into the caller's
	buffer. A short read from the source is returned as is.

	```
	decoder = Decoder(BytesIO(b"3\\r\\nhel\\r\\nb\\r\\nlo world!!!\\r\\n0\\r\\n\\r\\n"))
	assert decoder.read() == b"hello world!!!"
	```
	"""

	def __init__(
		self,
		source: ByteSource,
		*,
		keepTrailers: bool = False,
		maxLineLength: int | None = None,
		maxChunkSize: int | None = None,
		maxTrailerSize: int | None = None,
	):
		super().__init__()
		self.source: ByteSource = source
		self.parser: ChunkParser = ChunkParser(
			keepTrailers=keepTrailers,
			maxLineLength=maxLineLength,
			maxChunkSize=maxChunkSize,
			maxTrailerSize=maxTrailerSize,
		)

	@property
	def state(self) -> DecoderState:
		return self.parser.state

	@property
	def isDone(self) -> bool:
		return self.parser.isDone

	@property
	def trailers(self) -> list[Trailer]:
		"""The trailer fields, only collected when `keepTrailers` is set."""
		return self.parser.trailers

	def readable(self) -> bool:
		return True

	def close(self) -> None:
		"""Closes the decoder, leaving the source open."""
		parser: ChunkParser | None = getattr(self, "parser", None)
		if not self.closed and parser and not parser.isDone and not parser.error:
			warning("Decoder closed before the end of the chunked body", state=str(parser.state))
		super().close()

	def readinto(self, buffer: Any) -> int | None:
		"""Reads dechunked data into `buffer`, returning the number of bytes
		read, `0` at the end of the body, or `None` when the source has no
		data available right now."""
		parser = self.parser
		if parser.error:
			raise parser.error
		if self.closed:
			raise ValueError("I/O operation on closed file.")
		view = memoryview(buffer).cast("B")
		if not len(view):
			return 0
		# We go through the framing until we reach chunk data or the end
		while parser.state.phase is not Phase.ReadingChunkData:
			if parser.isDone:
				return 0
			elif self._feedFraming() is None:
				return None
		count = min(parser.state.remaining, len(view))
		read = self._readData(view[:count])
		if read is None:
			return None
		elif read == 0:
			# Raises `IncompleteChunk`
			parser.end()
		parser.consume(read)
		return read

	def _feedFraming(self) -> int | None:
		"""Feeds framing bytes to the parser, returning how many were
		consumed or `None` if the source has nothing to give."""
		parser = self.parser
		peek = getattr(self.source, "peek", None)
		data: bytes | None = peek(1) if peek else None
		if not data:
			# An empty peek may mean no data yet on a non-blocking stream, only
			# the read tells the end of the stream apart.
			peek = None
			data = self.source.read(1)
			if data is None:
				return None
			elif not data:
				parser.end()
		_, read = parser.feed(data)
		if peek:
			# We only discard what the parser consumed from the peeked data
			self.source.read(read)
		return read

	def _readData(self, view: memoryview) -> int | None:
		readinto = getattr(self.source, "readinto", None)
		if readinto:
			return readinto(view)
		data = self.source.read(len(view))
		if data is None:
			return None
		n = len(data)
		view[:n] = data
		return n

	def __repr__(self) -> str:
		return f"Decoder({self.parser.state})"


def decode(data: bytes, **options: Any) -> bytes:
	"""Decodes a whole chunked body, raising an error if it is incomplete."""
	return Decoder(io.BytesIO(data), **options).readall()


# EOF
