from os import getenv
import sys

# Longest size line (digits, extensions and EOL) we accept before failing
MAX_LINE_LENGTH: int = int(getenv("CHUNKED_MAX_LINE_LENGTH", 4096))

# Chunk sizes above that are rejected instead of wrapping around
MAX_CHUNK_SIZE: int = int(getenv("CHUNKED_MAX_CHUNK_SIZE", sys.maxsize))

# Total bytes of trailer fields accepted after the last chunk
MAX_TRAILER_SIZE: int = int(getenv("CHUNKED_MAX_TRAILER_SIZE", 65536))

# One of Debug, Info, Warning, Error
LOG_LEVEL: str = getenv("CHUNKED_LOG_LEVEL", "Warning")

# EOF
