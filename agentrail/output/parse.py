"""
Extract a JSON value from raw LLM content.

Models like to wrap JSON in markdown fences and to add an explanation after
it. Extraction strips one fenced block (optionally tagged ``json``), then
takes the first ``{`` or ``[`` (whichever comes first) and scans forward to
its matching close bracket, counting depth and skipping backslash-escaped
characters. Anything after the match is ignored.
"""

import re

from agentrail.output.models import ExtractResult, ParseErrorKind

CODE_BLOCK_RE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)


def strip_markdown_code_block(content: str) -> str:
    """Return the inner text of a leading fenced code block, else the trimmed content."""
    trimmed = content.strip()
    match = CODE_BLOCK_RE.match(trimmed)
    if match:
        return match.group(1).strip()
    return trimmed


def find_matching_bracket(text: str, start: int, open_char: str, close_char: str) -> int:
    """Index of the bracket closing the one at ``start``, or -1 if it never closes."""
    depth = 0
    i = start
    length = len(text)
    while i < length:
        char = text[i]
        if char == "\\" and i + 1 < length:
            i += 2
            continue
        if char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def extract_first_json(text: str) -> ExtractResult:
    obj_index = text.find("{")
    arr_index = text.find("[")

    if obj_index >= 0 and (arr_index < 0 or obj_index <= arr_index):
        start, end = obj_index, find_matching_bracket(text, obj_index, "{", "}")
    elif arr_index >= 0:
        start, end = arr_index, find_matching_bracket(text, arr_index, "[", "]")
    else:
        return ExtractResult(
            found=False,
            reason="No JSON object or array found in content",
            error_kind=ParseErrorKind.NO_JSON_FOUND,
        )

    if end < 0:
        return ExtractResult(
            found=False,
            reason="Unclosed JSON bracket",
            error_kind=ParseErrorKind.UNCLOSED_BRACKET,
        )

    return ExtractResult(found=True, json_text=text[start:end + 1])


def extract_json(content: str, strip_markdown: bool = True) -> ExtractResult:
    """
    Locate the first JSON object or array in ``content``.

    Args:
        content: Raw model output
        strip_markdown: Remove a leading ```json ... ``` fence first

    Returns:
        ExtractResult with ``json_text`` on success, ``reason`` otherwise
    """
    text = strip_markdown_code_block(content) if strip_markdown else content.strip()
    if not text:
        return ExtractResult(
            found=False,
            reason="Empty content after strip",
            error_kind=ParseErrorKind.NO_JSON_FOUND,
        )
    return extract_first_json(text)
