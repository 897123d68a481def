"""
Audio Transcoder (atc) - Profile-driven audio transcoding through external encoders

Converts audio with:
- Named, declarative transcoding profiles (MP3, Opus, replay gain variants)
- Shell-style executable templates with <file>, <seek> and <bitrate> placeholders
- Streaming of encoder output into any byte sink
- Cancellation and deadlines that never leave orphaned processes
"""

__version__ = "0.1.0"
__package_name__ = "audio-transcoder"
__short_name__ = "atc"
