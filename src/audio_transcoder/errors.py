"""Exceptions raised while synthesizing and running transcode commands.

Configuration problems (bad templates, missing programs) derive from
ProfileError so a host can tell them apart from failures of a particular
process and from deliberate cancellation.
"""


class TranscodeError(Exception):
    """Base exception for all transcoding errors."""


class ProfileError(TranscodeError):
    """A profile cannot be turned into a runnable command.

    These are configuration errors, not transient faults.
    """


class TemplateSyntaxError(ProfileError):
    """The executable template could not be tokenized (unbalanced quoting)."""

    def __init__(self, template: str, detail: str) -> None:
        self.template = template
        self.detail = detail
        super().__init__(f"split command: {detail}: {template!r}")


class NoProfilePartsError(ProfileError):
    """The executable template tokenized to zero parts."""

    def __init__(self, template: str = "") -> None:
        self.template = template
        super().__init__("not enough profile parts")


class ProgramNotFoundError(ProfileError):
    """The template's program was not found on the search path."""

    def __init__(self, program: str) -> None:
        self.program = program
        super().__init__(f"find name: executable {program!r} not found in PATH")


class ProfileNotFoundError(TranscodeError, KeyError):
    """No profile is registered under the requested name."""

    def __init__(self, name: str, available: list[str] | None = None) -> None:
        self.name = name
        self.available = available or []
        super().__init__(name)

    def __str__(self) -> str:
        message = f"unknown profile: {self.name}"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        return message


class ProcessStartError(TranscodeError):
    """The resolved program exists but could not be launched."""

    def __init__(self, program: str, detail: str) -> None:
        self.program = program
        self.detail = detail
        super().__init__(f"start {program}: {detail}")


class ProcessExitError(TranscodeError):
    """The process ran but failed, or its output stream broke."""

    def __init__(self, program: str, returncode: int | None, stderr: str = "") -> None:
        self.program = program
        self.returncode = returncode
        self.stderr = stderr
        if returncode is None:
            message = f"{program}: output stream ended abnormally"
        else:
            message = f"{program} exited with status {returncode}"
        if stderr.strip():
            message += f": {stderr.strip().splitlines()[-1]}"
        super().__init__(message)


class OutputWriteError(TranscodeError):
    """Writing transcoded bytes to the output sink failed."""


class TranscodeCancelledError(TranscodeError):
    """The context was cancelled or its deadline passed."""

    def __init__(self, reason: str = "cancelled") -> None:
        self.reason = reason
        super().__init__(f"transcode {reason}")


class ConfigError(TranscodeError):
    """The configuration file contains an invalid entry."""
