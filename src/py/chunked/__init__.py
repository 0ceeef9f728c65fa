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
)  # NOQA: F401
from .parser import ChunkParser  # NOQA: F401
from .decoder import Decoder, decode  # NOQA: F401
from .encoder import Encoder, encode  # NOQA: F401
from .codec import BytesTransform, ChunkedEncoder, ChunkedDecoder  # NOQA: F401

__version__ = "1.0.0"

# EOF
