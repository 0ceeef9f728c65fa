import io
import pytest
from chunked import (
	Decoder,
	Encoder,
	Phase,
	Trailer,
	decode,
	MalformedSizeLine,
	SizeOverflow,
	MalformedTerminator,
	MalformedTrailer,
	IncompleteChunk,
)

HELLO: bytes = b"3\r\nhel\r\nb\r\nlo world!!!\r\n0\r\n\r\n"


class Trickle:
	"""A source that returns at most `size` bytes per read and counts reads."""

	def __init__(self, data: bytes, size: int = 1):
		self.data = data
		self.offset = 0
		self.size = size
		self.reads = 0

	def read(self, n: int = -1) -> bytes:
		self.reads += 1
		n = self.size if n < 0 else min(n, self.size)
		res = self.data[self.offset : self.offset + n]
		self.offset += len(res)
		return res


class Script:
	"""A non-blocking source, where `None` means no data is available yet."""

	def __init__(self, *items: bytes | None):
		self.items = list(items)

	def read(self, n: int = -1) -> bytes | None:
		if not self.items:
			return b""
		head = self.items[0]
		if head is None:
			self.items.pop(0)
			return None
		res = head if n < 0 else head[:n]
		if len(res) == len(head):
			self.items.pop(0)
		else:
			self.items[0] = head[len(res) :]
		return res


def test_decode_valid_chunks():
	assert Decoder(io.BytesIO(HELLO)).read() == b"hello world!!!"
	assert decode(HELLO) == b"hello world!!!"


def test_decode_zero_length():
	decoder = Decoder(io.BytesIO(b"0\r\n\r\n"))
	assert decoder.read() == b""
	assert decoder.isDone


def test_decode_byte_per_byte():
	assert Decoder(Trickle(HELLO)).read() == b"hello world!!!"


def test_decode_buffered_source():
	source = io.BufferedReader(io.BytesIO(HELLO + b"NEXT"))
	assert Decoder(source).read() == b"hello world!!!"
	assert source.read() == b"NEXT"


def test_decode_does_not_read_past_body():
	source = io.BytesIO(HELLO + b"GET / HTTP/1.1\r\n")
	decoder = Decoder(source)
	assert decoder.read() == b"hello world!!!"
	assert source.read() == b"GET / HTTP/1.1\r\n"


def test_decode_bare_lf():
	assert decode(b"3\nhel\nb\nlo world!!!\n0\n\n") == b"hello world!!!"


def test_decode_extensions():
	assert decode(b"3;name=value\r\nhel\r\n2;x\r\nlo\r\n0;last\r\n\r\n") == b"hello"


def test_decode_uppercase_and_leading_zeros():
	data = b"A" * 26
	assert decode(b"001A\r\n" + data + b"\r\n000\r\n\r\n") == data


def test_read_never_crosses_chunk():
	decoder = Decoder(io.BytesIO(HELLO))
	assert decoder.read(100) == b"hel"
	assert decoder.state.phase is Phase.ReadingChunkTerminator
	assert decoder.read(5) == b"lo wo"
	assert decoder.state.phase is Phase.ReadingChunkData
	assert decoder.state.remaining == 6
	assert decoder.read(100) == b"rld!!!"
	assert decoder.read(100) == b""
	assert decoder.isDone


def test_partial_read_is_returned():
	decoder = Decoder(Trickle(b"5\r\nhello\r\n0\r\n\r\n", 2))
	assert decoder.read(5) == b"he"
	assert decoder.state.remaining == 3
	assert decoder.read(5) == b"ll"
	assert decoder.read(5) == b"o"
	assert decoder.read(5) == b""


def test_readinto_empty_buffer():
	source = Trickle(HELLO)
	assert Decoder(source).readinto(bytearray()) == 0
	assert source.reads == 0


def test_done_does_not_touch_source():
	source = Trickle(HELLO, 4)
	decoder = Decoder(source)
	assert decoder.read() == b"hello world!!!"
	reads = source.reads
	for _ in range(3):
		assert decoder.read(10) == b""
		assert decoder.readinto(bytearray(10)) == 0
	assert source.reads == reads


def test_non_blocking_source():
	decoder = Decoder(Script(b"3\r", None, b"\nhel", None, b"\r\n0\r\n\r\n"))
	buffer = bytearray(10)
	assert decoder.readinto(buffer) is None
	assert decoder.state.phase is Phase.ReadingSize
	assert decoder.readinto(buffer) == 3
	assert buffer[:3] == b"hel"
	assert decoder.readinto(buffer) is None
	assert decoder.readinto(buffer) == 0
	assert decoder.isDone


class NonBlockingRaw(io.RawIOBase):
	"""A raw stream where `None` items mean no data is available yet, to be
	wrapped in a `BufferedReader`, which then peeks `b""` when nothing is
	buffered."""

	def __init__(self, *items: bytes | None):
		super().__init__()
		self.items = list(items)

	def readable(self) -> bool:
		return True

	def readinto(self, buffer) -> int | None:
		if not self.items:
			return 0
		head = self.items.pop(0)
		if head is None:
			return None
		n = min(len(buffer), len(head))
		buffer[:n] = head[:n]
		if n < len(head):
			self.items.insert(0, head[n:])
		return n


def test_non_blocking_buffered_source():
	source = io.BufferedReader(
		NonBlockingRaw(b"3\r", None, None, b"\nhel", None, None, b"\r\n0\r\n\r\n")
	)
	decoder = Decoder(source)
	buffer = bytearray(10)
	assert decoder.readinto(buffer) is None
	assert decoder.state.phase is Phase.ReadingSize
	assert decoder.readinto(buffer) == 3
	assert buffer[:3] == b"hel"
	assert decoder.readinto(buffer) is None
	assert decoder.state.phase is Phase.ReadingChunkTerminator
	assert decoder.readinto(buffer) == 0
	assert decoder.isDone


def test_trailers_discarded():
	decoder = Decoder(io.BytesIO(b"3\r\nhel\r\n0\r\nExpires: never\r\n\r\n"))
	assert decoder.read() == b"hel"
	assert decoder.trailers == []


def test_trailers_kept():
	decoder = Decoder(
		io.BytesIO(
			b"3\r\nhel\r\n0\r\nExpires: never\r\nX-Sum:abc\r\n  def\r\n\r\n"
		),
		keepTrailers=True,
	)
	assert decoder.read() == b"hel"
	assert decoder.trailers == [
		Trailer("Expires", "never"),
		Trailer("X-Sum", "abc def"),
	]


def test_missing_size_terminator():
	with pytest.raises(MalformedSizeLine):
		decode(b"3")
	with pytest.raises(MalformedSizeLine):
		decode(b"3\r")


def test_empty_source():
	with pytest.raises(MalformedSizeLine):
		decode(b"")


def test_invalid_chunk_length():
	with pytest.raises(MalformedSizeLine):
		decode(b"m\r\n\r\n")
	with pytest.raises(MalformedSizeLine):
		decode(b"3x;ext\r\nhel\r\n0\r\n\r\n")
	with pytest.raises(MalformedSizeLine):
		decode(b"\r\nhel\r\n0\r\n\r\n")
	with pytest.raises(MalformedSizeLine):
		decode(b"0x3\r\nhel\r\n0\r\n\r\n")
	with pytest.raises(MalformedSizeLine):
		decode(b" 3\r\nhel\r\n0\r\n\r\n")


def test_carriage_return_in_size_line():
	with pytest.raises(MalformedSizeLine):
		decode(b"3\rhel\r\nb\r\nlo world!!!\r\n0\r\n")


def test_size_line_too_long():
	with pytest.raises(MalformedSizeLine):
		Decoder(io.BytesIO(b"3;" + b"x" * 100 + b"\r\nhel\r\n"), maxLineLength=32).read()


def test_size_overflow():
	with pytest.raises(SizeOverflow):
		decode(b"ffffffffffffffffffffffff\r\n")
	with pytest.raises(SizeOverflow):
		Decoder(io.BytesIO(b"400\r\n"), maxChunkSize=1023).read()


def test_malformed_terminator():
	with pytest.raises(MalformedTerminator):
		decode(b"2\r\nhel\r\nb\r\nlo world!!!\r\n0\r\n")
	with pytest.raises(MalformedTerminator):
		decode(b"3\r\nhel\r\r\n0\r\n\r\n")
	with pytest.raises(MalformedTerminator):
		decode(b"3\r\nhel")


def test_incomplete_chunk():
	with pytest.raises(IncompleteChunk):
		decode(b"a\r\nhel")


def test_malformed_trailer():
	with pytest.raises(MalformedTrailer):
		decode(b"0\r\n")
	with pytest.raises(MalformedTrailer):
		decode(b"0\r\nExpires: never\r\n")
	with pytest.raises(MalformedTrailer):
		decode(b"0\r\nnot a field\r\n\r\n")
	with pytest.raises(MalformedTrailer):
		decode(b"0\r\n continuation\r\n\r\n")
	with pytest.raises(MalformedTrailer):
		Decoder(io.BytesIO(b"0\r\nA: " + b"b" * 64 + b"\r\n\r\n"), maxTrailerSize=16).read()


def test_errors_are_latched():
	source = Trickle(b"3\r\nhelXX\r\n0\r\n\r\n", 8)
	decoder = Decoder(source)
	assert decoder.read(10) == b"hel"
	with pytest.raises(MalformedTerminator) as first:
		decoder.read(10)
	assert first.value.phase is Phase.ReadingChunkTerminator
	assert first.value.offset == 7
	reads = source.reads
	with pytest.raises(MalformedTerminator) as second:
		decoder.read(10)
	assert second.value is first.value
	assert source.reads == reads


def test_io_errors_propagate():
	class Broken:
		def read(self, n: int = -1) -> bytes:
			raise ConnectionResetError("Connection reset by peer")

	with pytest.raises(ConnectionResetError):
		Decoder(Broken()).read()


def test_closed_decoder():
	source = io.BytesIO(HELLO)
	decoder = Decoder(source)
	decoder.close()
	assert not source.closed
	with pytest.raises(ValueError):
		decoder.read()


def test_iterates_lines():
	body = b"first line\nsecond line\n"
	encoded = io.BytesIO()
	with Encoder(encoded) as encoder:
		encoder.write(body[:6])
		encoder.write(body[6:])
	with Decoder(io.BytesIO(encoded.getvalue())) as decoder:
		assert list(decoder) == [b"first line\n", b"second line\n"]


@pytest.mark.parametrize("size", [1, 2, 3, 7, 64])
def test_round_trip(size: int):
	blocks = [b"a", b"hello", bytes(range(256)), b"\r\n0\r\n\r\n", b"x" * 4097]
	sink = io.BytesIO()
	encoder = Encoder(sink)
	for block in blocks:
		encoder.write(block)
	encoder.finish()
	decoder = Decoder(Trickle(sink.getvalue(), size))
	assert decoder.read() == b"".join(blocks)


# EOF
