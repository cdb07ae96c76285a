"""
Error taxonomy for podcast generation.
Every error aborts the run; only the CLI turns them into exit codes.
"""

from typing import Iterable, Optional


class PoddleError(RuntimeError):
    """Base class for all podcast generation failures."""


class InvalidPodcastSpec(PoddleError):
    """The podcast JSON document could not be read or validated."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid podcast file {source}: {reason}")


class InvalidVoice(PoddleError):
    """Requested speaker is not available for the language."""

    def __init__(self, language: str, voice: Optional[str] = None, available: Iterable[str] = ()):
        self.language = language
        self.voice = voice
        self.available = list(available)
        if not self.available:
            message = f"Unsupported language '{language}'"
        else:
            message = (
                f"Voice '{voice}' is not available for {language}. "
                f"Choose one of: {', '.join(self.available)}"
            )
        super().__init__(message)


class SilenceClipUnavailable(PoddleError):
    """The silence clip given by the user could not be read."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot use silence clip {source}: {reason}")


class ServiceResponseInvalid(PoddleError):
    """A synthesis call completed without an audio payload."""

    def __init__(self, index: int, detail: str = "No audio stream"):
        self.index = index
        super().__init__(f"{detail} for phrase {index}")


class MuxFailed(PoddleError):
    """The external concatenation command did not succeed."""

    def __init__(self, command, returncode: Optional[int], stderr: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr or ""
        if returncode is None:
            message = f"Could not run {self.command[0]}: {self.stderr}"
        else:
            message = f"{self.command[0]} exited with status {returncode}"
            if self.stderr.strip():
                message += f":\n{self.stderr.strip()}"
        super().__init__(message)
