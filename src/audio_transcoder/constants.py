"""
Centralized constants for Audio Transcoder.

Placeholder tokens, MIME types and defaults shared across modules
should be defined here to avoid duplication.
"""

# Executable template placeholders (matched by exact token equality)
FILE_PLACEHOLDER = "<file>"
SEEK_PLACEHOLDER = "<seek>"
BITRATE_PLACEHOLDER = "<bitrate>"

# Suffixes appended to substituted values
SEEK_UNIT = "us"
BITRATE_UNIT = "k"

# Output MIME types
MIME_MP3 = "audio/mpeg"
MIME_OGG = "audio/ogg"

# Output suffixes
SUFFIX_MP3 = "mp3"
SUFFIX_OPUS = "opus"

# Streaming defaults
DEFAULT_CHUNK_SIZE = 32 * 1024  # bytes per stdout read
DEFAULT_POLL_INTERVAL = 0.1  # seconds between cancellation checks
STDERR_TAIL_LINES = 20  # stderr lines kept for error messages
READER_JOIN_TIMEOUT = 2.0  # seconds to wait for pipe reader threads
STDOUT_QUEUE_CHUNKS = 4  # chunks read ahead of the sink before the encoder is throttled

# Environment variables
ENV_CONFIG = "ATC_CONFIG"
ENV_LOG_LEVEL = "ATC_LOG_LEVEL"
