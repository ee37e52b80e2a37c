"""Validate parsed data against a JSON Schema (draft-07) using jsonschema."""

from typing import Any

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError

from agentrail.output.models import JsonSchema, ValidationResult


def _instance_path(error) -> str:
    if not error.absolute_path:
        return "/"
    return "/" + "/".join(str(part) for part in error.absolute_path)


def validate_against_schema(data: Any, schema: JsonSchema) -> ValidationResult:
    """
    Validate ``data`` and collect every violated constraint.

    Each error reads ``"<instance path> <message>"``, e.g.
    ``"/age 'x' is not of type 'number'"``. A malformed schema is reported
    as a single error rather than raised.
    """
    try:
        Draft7Validator.check_schema(schema)
    except SchemaError as e:
        return ValidationResult(valid=False, errors=[f"Invalid schema: {e.message}"])

    try:
        errors = sorted(Draft7Validator(schema).iter_errors(data), key=lambda e: list(map(str, e.absolute_path)))
    except RecursionError:
        return ValidationResult(valid=False, errors=["/ value nested too deeply to validate"])
    if not errors:
        return ValidationResult(valid=True)
    return ValidationResult(
        valid=False,
        errors=[f"{_instance_path(e)} {e.message}" for e in errors],
    )
