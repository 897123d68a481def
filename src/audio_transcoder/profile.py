"""
Transcoding profiles - Immutable descriptions of one transcoding target.

A profile defines WHAT to produce (MIME type, suffix, bitrate, seek offset)
and HOW to invoke the encoder (an executable template). Profiles are never
modified in place: with_bitrate() and with_seek() return new values, so one
base profile can be shared by any number of concurrent transcodes.
"""

from dataclasses import dataclass, replace
from datetime import timedelta


@dataclass(frozen=True)
class Profile:
    """Configuration for a transcoding profile."""

    mime: str
    suffix: str
    bitrate: int  # kbit/s, 0 = caller must supply one
    exec_template: str
    seek: timedelta = timedelta(0)

    def filename(self, stem: str) -> str:
        """Output file name for an input with the given stem."""
        return f"{stem}.{self.suffix}"


def new_profile(mime: str, suffix: str, bitrate: int, exec_template: str) -> Profile:
    """
    Create a profile starting at the beginning of the input.

    The template is not validated here; problems surface when a command is
    synthesized from it.
    """
    return Profile(mime=mime, suffix=suffix, bitrate=bitrate, exec_template=exec_template)


def with_bitrate(profile: Profile, bitrate: int) -> Profile:
    """Return a copy of profile with a different bitrate (kbit/s)."""
    return replace(profile, bitrate=bitrate)


def with_seek(profile: Profile, seek: timedelta | float) -> Profile:
    """
    Return a copy of profile starting at a different offset.

    Args:
        profile: Base profile (left untouched)
        seek: Offset as a timedelta or a number of seconds

    Returns:
        New Profile with seek replaced
    """
    if not isinstance(seek, timedelta):
        seek = timedelta(seconds=seek)
    return replace(profile, seek=seek)
