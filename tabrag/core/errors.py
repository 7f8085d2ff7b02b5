"""Error types shared across layers."""
from enum import Enum


class ErrorCode(str, Enum):
    """Typed error codes reported in result envelopes."""
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    NO_DATA = "NO_DATA"
    NO_TEXT_COLUMNS = "NO_TEXT_COLUMNS"
    NO_EMBEDDED_DATA = "NO_EMBEDDED_DATA"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class LLMUnavailableError(Exception):
    """The model server could not be reached."""
