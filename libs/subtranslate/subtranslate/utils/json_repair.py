"""Utilities for repairing truncated JSON."""

from __future__ import annotations


def _drop_trailing_partial(text: str) -> str:
    """Cut a dangling `,` / `:` / partial key so closers can be appended."""
    stripped = text.rstrip()
    while stripped and stripped[-1] in ",:":
        stripped = stripped[:-1].rstrip()
    return stripped


def repair_truncated_json(text: str) -> str:
    """Attempt to repair a truncated JSON string.

    Handles common truncation issues:
    - Unterminated strings (missing closing quote)
    - Unterminated objects (missing closing brace)
    - Unterminated arrays (missing closing bracket)
    - A trailing comma or colon left by the cut

    Returns:
        The repaired JSON string (best effort)
    """
    if not text or not text.strip():
        return "{}"

    text = text.strip()

    in_string = False
    escape_next = False
    closers: list[str] = []

    for char in text:
        if escape_next:
            escape_next = False
            continue

        if char == "\\":
            escape_next = True
            continue

        if char == '"':
            in_string = not in_string
        elif not in_string:
            if char == "{":
                closers.append("}")
            elif char == "[":
                closers.append("]")
            elif char in "}]" and closers:
                closers.pop()

    result = text
    if in_string:
        result += '"'
    else:
        result = _drop_trailing_partial(result)

    while closers:
        result += closers.pop()

    return result
