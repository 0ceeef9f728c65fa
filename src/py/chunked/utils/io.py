from typing import Protocol, runtime_checkable
from mypy_extensions import i64

EOL: bytes = b"\r\n"
CR: int = 0x0D
LF: int = 0x0A
SP: int = 0x20
HT: int = 0x09
EXT: int = ord(";")
LAST_CHUNK: bytes = b"0\r\n"
END: bytes = b"0\r\n\r\n"

# Hex digit value for every byte, -1 when not a hex digit. Python's `int(s, 16)`
# would also accept signs, `0x` prefixes, underscores and whitespace.
HEX: tuple[int, ...] = tuple(
	(
		b - 0x30
		if 0x30 <= b <= 0x39
		else b - 0x57
		if 0x61 <= b <= 0x66
		else b - 0x37
		if 0x41 <= b <= 0x46
		else -1
	)
	for b in range(256)
)


@runtime_checkable
class ByteSource(Protocol):
	"""Anything we can read bytes from, `None` meaning no data is available
	right now (non-blocking) and `b""` the end of the stream."""

	def read(self, size: int = -1, /) -> bytes | None: ...


@runtime_checkable
class ByteSink(Protocol):
	def write(self, data: bytes, /) -> int | None: ...


def parseChunkSize(line: bytes | bytearray, limit: int) -> i64:
	"""Parses the size from a size line (without its EOL), ignoring any
	chunk extension. Raises `ValueError` when there are no digits or
	a non-hex character, and `OverflowError` when the size is above `limit`."""
	size: i64 = 0
	digits: int = 0
	for b in line:
		if b == EXT:
			break
		v = HEX[b]
		if v < 0:
			raise ValueError(f"Non-hex character {bytes((b,))!r} in chunk size")
		# Checked before computing, as native ints wrap around when compiled
		if size > (limit - v) // 16:
			raise OverflowError(f"Chunk size exceeds {limit}")
		size = size * 16 + v
		digits += 1
	if not digits:
		raise ValueError("Chunk size has no hex digits")
	return size


def formatChunkSize(size: int) -> bytes:
	"""Formats a size line, lowercase hex with no leading zeros."""
	return b"%x\r\n" % (size)


def frameChunk(data: bytes | bytearray | memoryview) -> bytes:
	"""Returns `data` framed as a single chunk."""
	return b"".join((formatChunkSize(len(data)), data, EOL))


def formatTrailers(trailers: dict[str, str] | list[tuple[str, str]]) -> bytes:
	items = trailers.items() if isinstance(trailers, dict) else trailers
	res = bytearray()
	for name, value in items:
		if not name or any(_ in name for _ in ":\r\n "):
			raise ValueError(f"Invalid trailer name: {name!r}")
		if "\r" in value or "\n" in value:
			raise ValueError(f"Invalid trailer value for {name}: {value!r}")
		res += f"{name}: {value}\r\n".encode("latin-1")
	return bytes(res)


def writeAll(sink: ByteSink, data: bytes) -> int:
	"""Writes all of `data` to the sink, retrying on short writes. Sinks
	returning `None` (like buffered writers) are assumed to take everything."""
	view = memoryview(data)
	total: int = len(view)
	offset: int = 0
	while offset < total:
		n = sink.write(view[offset:] if offset else data)
		if n is None:
			break
		elif n <= 0:
			raise BlockingIOError(f"Sink accepted no data, {total - offset} bytes left")
		offset += n
	return total


# EOF
