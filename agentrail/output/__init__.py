"""
Output Control Layer.

Treats LLM output as untrusted: extracts the first JSON value from free-form
text (markdown fences and trailing prose tolerated), parses it, and validates
it against a JSON Schema or a pydantic model.
"""

from agentrail.output.controller import OutputController
from agentrail.output.models import (
    ExtractResult,
    JsonSchema,
    ParseErrorKind,
    ParseResult,
    ValidationResult,
)
from agentrail.output.parse import extract_json
from agentrail.output.validate import validate_against_schema

__all__ = [
    "ExtractResult",
    "JsonSchema",
    "OutputController",
    "ParseErrorKind",
    "ParseResult",
    "ValidationResult",
    "extract_json",
    "validate_against_schema",
]
