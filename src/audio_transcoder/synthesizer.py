"""
Command synthesizer - Turn a profile and an input path into a runnable command.

Steps:
1. Split the executable template with POSIX shell quoting rules
2. Resolve the program name on PATH
3. Map every remaining token through the placeholder table (default: unchanged)

The result is computed fresh for every transcode and never cached.
"""

import logging
import os
import shlex
import shutil
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import timedelta
from types import MappingProxyType

from .constants import (
    BITRATE_PLACEHOLDER,
    BITRATE_UNIT,
    FILE_PLACEHOLDER,
    SEEK_PLACEHOLDER,
    SEEK_UNIT,
)
from .errors import NoProfilePartsError, ProgramNotFoundError, TemplateSyntaxError
from .profile import Profile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Command:
    """A resolved program path plus its ordered arguments."""

    program: str
    args: tuple[str, ...] = ()

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]

    def __str__(self) -> str:
        return shlex.join(self.argv)


def format_seek(seek: timedelta) -> str:
    """Format a seek offset as whole microseconds, e.g. 1.5s -> '1500000us'."""
    return f"{seek // timedelta(microseconds=1)}{SEEK_UNIT}"


def format_bitrate(bitrate: int) -> str:
    """Format a bitrate in kbit/s, e.g. 128 -> '128k'."""
    return f"{bitrate}{BITRATE_UNIT}"


PLACEHOLDERS: Mapping[str, Callable[[Profile, str], str]] = MappingProxyType(
    {
        FILE_PLACEHOLDER: lambda profile, in_path: in_path,
        SEEK_PLACEHOLDER: lambda profile, in_path: format_seek(profile.seek),
        BITRATE_PLACEHOLDER: lambda profile, in_path: format_bitrate(profile.bitrate),
    }
)


def split_template(template: str) -> list[str]:
    """
    Split an executable template into tokens.

    An unquoted '#' starts a comment that runs to the end of the line.

    Raises:
        TemplateSyntaxError: Quoting is unbalanced
        NoProfilePartsError: Template contains no tokens
    """
    try:
        parts = shlex.split(template, comments=True)
    except ValueError as e:
        raise TemplateSyntaxError(template, str(e)) from e
    if not parts:
        raise NoProfilePartsError(template)
    return parts


def resolve_program(name: str) -> str:
    """
    Locate an executable the way a shell would.

    Bare names are searched on PATH; names containing a path separator are
    checked directly. Either way the match must be executable.

    Raises:
        ProgramNotFoundError: No executable match
    """
    path = shutil.which(name)
    if path is None:
        raise ProgramNotFoundError(name)
    return path


def substitute(token: str, profile: Profile, in_path: str) -> str:
    """Replace a single placeholder token, or return the token unchanged."""
    handler = PLACEHOLDERS.get(token)
    if handler is None:
        return token
    return handler(profile, in_path)


def synthesize(profile: Profile, in_path: str | os.PathLike) -> Command:
    """
    Build the command for transcoding in_path with profile.

    Args:
        profile: Fully resolved profile (bitrate and seek already set)
        in_path: Input path, passed through verbatim as one argument

    Returns:
        Command with the resolved program and substituted arguments

    Raises:
        TemplateSyntaxError, NoProfilePartsError, ProgramNotFoundError
    """
    in_path = os.fspath(in_path)
    parts = split_template(profile.exec_template)
    program = resolve_program(parts[0])
    args = tuple(substitute(part, profile, in_path) for part in parts[1:])

    command = Command(program=program, args=args)
    logger.debug(f"Synthesized command: {command}")
    return command
