from abc import ABC, abstractmethod
from mypy_extensions import trait
from .model import Trailer
from .parser import ChunkParser
from .utils.io import END, frameChunk


@trait
class BytesTransform(ABC):
	"""An abstract bytes transform, for when bytes are pushed to the codec
	rather than read from a source."""

	@abstractmethod
	def feed(self, chunk: bytes, more: bool = False) -> bytes | None:
		"""Feeds bytes to the transform, may return a value."""

	@abstractmethod
	def flush(self) -> bytes | None:
		"""Ensures that the bytes transform is flushed, for the chunked
		encoder this produces the last chunk."""


# SEE: https://httpwg.org/specs/rfc9112.html#chunked.encoding
class ChunkedEncoder(BytesTransform):
	"""Encodes each fed block as one chunk"""

	__slots__ = ["ended"]

	def __init__(self) -> None:
		super().__init__()
		self.ended: bool = False

	def feed(self, chunk: bytes, more: bool = False) -> bytes | None:
		if self.ended:
			raise ValueError("Cannot feed a finished chunked body")
		return frameChunk(chunk) if chunk else None

	def flush(self) -> bytes | None:
		if self.ended:
			return None
		self.ended = True
		return END


class ChunkedDecoder(BytesTransform):
	"""Decodes chunks fed in any fragmentation. Once the body is complete,
	any extra data is kept in `rest`."""

	__slots__ = ["parser", "rest"]

	def __init__(self, *, keepTrailers: bool = False) -> None:
		super().__init__()
		self.parser: ChunkParser = ChunkParser(keepTrailers=keepTrailers)
		self.rest: bytes = b""

	@property
	def isDone(self) -> bool:
		return self.parser.isDone

	@property
	def trailers(self) -> list[Trailer]:
		return self.parser.trailers

	def feed(self, chunk: bytes, more: bool = False) -> bytes | None:
		parser = self.parser
		if parser.isDone:
			self.rest += chunk
			return None
		res = bytearray()
		offset: int = 0
		size: int = len(chunk)
		while offset < size and not parser.isDone:
			data, read = parser.feed(chunk, offset)
			if data is not None:
				res += data
			offset += read
		if offset < size:
			self.rest += chunk[offset:]
		return bytes(res) if res else None

	def flush(self) -> bytes | None:
		# Raises when the body stopped half-way, or re-raises the latched error
		self.parser.end()
		return None


# EOF
