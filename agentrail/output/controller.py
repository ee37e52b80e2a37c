"""
Output Controller: turn untrusted LLM text into validated data.

The model is treated as an untrusted producer: nothing it returns is used
until it has been extracted, parsed and (optionally) validated. No failure
raises past ``parse_and_validate``; every failure path returns a
``ParseResult`` carrying the error kind, messages, and a capped snippet of
the raw content.
"""

from __future__ import annotations

import json
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from agentrail.output.models import RAW_SNIPPET_LIMIT, JsonSchema, ParseErrorKind, ParseResult
from agentrail.output.parse import extract_json
from agentrail.output.validate import validate_against_schema

ModelT = TypeVar("ModelT", bound=BaseModel)


def _reject_constant(name: str):
    # NaN, Infinity and -Infinity are not JSON
    raise ValueError(f"Invalid JSON constant: {name}")


class OutputController:
    """
    Parse and validate raw model output.

    Args:
        strip_markdown_code_block: Default for stripping a ```json fence before parsing
    """

    def __init__(self, strip_markdown_code_block: bool = True):
        self._strip_markdown = strip_markdown_code_block

    def _parse(self, content: str, strip_markdown_code_block: bool | None) -> tuple[ParseResult, str]:
        strip = self._strip_markdown if strip_markdown_code_block is None else strip_markdown_code_block
        extracted = extract_json(content, strip)
        if not extracted.found:
            return (
                ParseResult(
                    success=False,
                    errors=[extracted.reason],
                    error_kind=extracted.error_kind,
                    raw=content[:RAW_SNIPPET_LIMIT],
                ),
                "",
            )

        json_text = extracted.json_text
        try:
            data = json.loads(json_text, parse_constant=_reject_constant)
        except (ValueError, RecursionError) as e:
            message = "JSON nested too deeply" if isinstance(e, RecursionError) else str(e)
            return (
                ParseResult(
                    success=False,
                    errors=[message],
                    error_kind=ParseErrorKind.PARSE_ERROR,
                    raw=json_text[:RAW_SNIPPET_LIMIT],
                ),
                json_text,
            )

        return ParseResult(success=True, data=data), json_text

    def parse_and_validate(
        self,
        content: str,
        schema: JsonSchema | None = None,
        strip_markdown_code_block: bool | None = None,
    ) -> ParseResult:
        """
        Extract JSON from ``content`` and validate it against ``schema`` if given.

        Args:
            content: Raw model output
            schema: JSON Schema to validate against; omitted means parse only
            strip_markdown_code_block: Per-call override of the fence stripping default

        Returns:
            ParseResult with ``data`` on success, errors and raw snippet on failure
        """
        result, json_text = self._parse(content, strip_markdown_code_block)
        if not result.success or schema is None:
            return result

        validation = validate_against_schema(result.data, schema)
        if not validation.valid:
            return ParseResult(
                success=False,
                errors=validation.errors or ["Validation failed"],
                error_kind=ParseErrorKind.VALIDATION_FAILED,
                raw=json_text[:RAW_SNIPPET_LIMIT],
            )
        return result

    def parse_model(
        self,
        content: str,
        model_cls: type[ModelT],
        strip_markdown_code_block: bool | None = None,
    ) -> ParseResult:
        """
        Parse ``content`` into an instance of a pydantic model.

        On success ``data`` is the model instance; validation errors are
        reported one per failing field as ``"<loc> <message>"``.
        """
        result, json_text = self._parse(content, strip_markdown_code_block)
        if not result.success:
            return result

        try:
            instance = model_cls.model_validate(result.data)
        except ValidationError as e:
            return ParseResult(
                success=False,
                errors=[
                    f"/{'/'.join(str(part) for part in err['loc'])} {err['msg']}"
                    for err in e.errors()
                ],
                error_kind=ParseErrorKind.VALIDATION_FAILED,
                raw=json_text[:RAW_SNIPPET_LIMIT],
            )
        return ParseResult(success=True, data=instance)
