"""Result types for output parsing and schema validation."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

# Raw content kept on failures is capped to this many characters
RAW_SNIPPET_LIMIT = 500

JsonSchema = dict[str, Any]


class ParseErrorKind(str, Enum):
    """Why untrusted output could not be turned into a value."""

    NO_JSON_FOUND = "no_json_found"
    UNCLOSED_BRACKET = "unclosed_bracket"
    PARSE_ERROR = "parse_error"
    VALIDATION_FAILED = "validation_failed"


class ExtractResult(BaseModel):
    """Outcome of locating a JSON span inside free-form text."""

    found: bool
    json_text: str | None = None
    reason: str | None = None
    error_kind: ParseErrorKind | None = None


class ValidationResult(BaseModel):
    """Outcome of validating data against a JSON Schema."""

    valid: bool
    errors: list[str] = Field(default_factory=list)


class ParseResult(BaseModel):
    """
    Discriminated success/failure of ``parse_and_validate``.

    On success ``data`` holds the parsed value. On failure ``error_kind`` and
    ``errors`` describe what went wrong and ``raw`` keeps a capped snippet of
    the offending content for diagnostics.
    """

    success: bool
    data: Any = None
    errors: list[str] = Field(default_factory=list)
    error_kind: ParseErrorKind | None = None
    raw: str | None = None
