"""Error Handler - error taxonomy and user-friendly error messages."""

from typing import Any, Optional, Sequence


class BeatReelError(Exception):
    """Base class for all errors raised while building a movie."""


class MissingMediaError(BeatReelError):
    """A visual beat has neither an image nor a movie file."""

    def __init__(self, beat_index: int, file: Optional[str] = None):
        self.beat_index = beat_index
        self.file = file
        if file:
            message = f"Beat {beat_index}: media file does not exist or is not a file: {file}"
        else:
            message = f"Beat {beat_index}: neither an image file nor a movie file is set"
        super().__init__(message)


class ProbeError(BeatReelError):
    """ffprobe could not read the duration of a produced file."""

    def __init__(self, path: str, beat_index: Optional[int] = None, reason: str = ""):
        self.path = path
        self.beat_index = beat_index
        self.reason = reason
        where = f"beat {beat_index}, " if beat_index is not None else ""
        super().__init__(f"Failed to probe media ({where}file={path}): {reason}".rstrip(": "))


class InvariantViolationError(BeatReelError):
    """Internal bookkeeping went out of sync; indicates a reconciliation bug."""


class EncoderError(BeatReelError):
    """The external encoder failed. Carries everything needed to diagnose it."""

    def __init__(
        self,
        message: str,
        command: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
    ):
        self.command = list(command) if command else []
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(message)

    def __str__(self) -> str:
        text = super().__str__()
        if self.returncode is not None:
            text += f" (exit code {self.returncode})"
        tail = self.stderr.strip().splitlines()[-5:]
        if tail:
            text += "\n" + "\n".join(tail)
        return text


def invariant(condition: bool, message: str) -> None:
    """Raise InvariantViolationError when an internal invariant does not hold."""
    if not condition:
        raise InvariantViolationError(message)


def format_error_message(
    operation: str,
    error: Exception,
    context: Optional[dict[str, Any]] = None,
    suggestion: Optional[str] = None,
) -> str:
    """
    Format a user-friendly error message.

    Args:
        operation: What operation was being performed (e.g., "Encoding final movie")
        error: The exception that occurred
        context: Additional context (e.g., {"beat_index": 3, "title": "demo"})
        suggestion: Optional suggestion for how to fix the issue

    Returns:
        Formatted error message
    """
    error_type = type(error).__name__
    error_msg = str(error)

    context_str = ""
    if context:
        context_parts = [f"{k}={v}" for k, v in context.items()]
        context_str = f" ({', '.join(context_parts)})"

    message = f"❌ {operation} failed{context_str}\n"
    message += f"   Error: {error_type}: {error_msg}"

    if suggestion:
        message += f"\n   💡 Suggestion: {suggestion}"

    return message


def get_fallback_suggestion(stage: str, error: Exception) -> Optional[str]:
    """
    Get a suggestion for how to recover from a failed pipeline stage.

    Args:
        stage: Stage name ("Probe", "Composition", "Encoder")
        error: The exception

    Returns:
        Suggestion string or None
    """
    error_msg = str(error).lower()

    if stage == "Probe":
        if isinstance(error, ProbeError) and "not found" in error_msg:
            return "Regenerate the missing media, or set ALLOW_MISSING_MEDIA=true for mock scripts."
        return "Check that ffprobe is installed and the file is a readable audio/video file."

    elif stage == "Composition":
        if isinstance(error, MissingMediaError):
            return f"Render an image or movie for beat {error.beat_index} before composing the movie."
        if isinstance(error, InvariantViolationError):
            return "This is a timeline bookkeeping bug. Please report it with the movie script."
        return None

    elif stage == "Encoder":
        if "no such file" in error_msg or "not found" in error_msg:
            return "Check FFMPEG_PATH in your .env file or install ffmpeg on PATH."
        elif "timed out" in error_msg:
            return "Encoding took too long. Raise ENCODER_TIMEOUT_SECONDS or lower the resolution."
        else:
            return "Inspect the ffmpeg stderr above; the filter graph is logged at DEBUG level."

    return None
