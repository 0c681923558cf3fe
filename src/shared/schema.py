"""JSON Schema helpers for tool arguments."""

from typing import Any

from jsonschema import Draft7Validator


def validate_schema(data: Any, schema: dict[str, Any]) -> tuple[bool, list[str]]:
    """
    Validate ``data`` against a Draft 7 schema.

    Messages are prefixed with the dotted path of the offending value and
    ordered by that path, so the output is stable between runs.

    Returns:
        Tuple of (is_valid, list of error messages)
    """
    if not schema:
        return True, []

    messages = []
    for error in sorted(Draft7Validator(schema).iter_errors(data), key=lambda e: list(map(str, e.path))):
        path = ".".join(str(part) for part in error.path)
        messages.append(f"{path}: {error.message}" if path else error.message)

    return not messages, messages


def object_schema(
    properties: dict[str, dict[str, Any]] | None = None,
    required: list[str] | None = None
) -> dict[str, Any]:
    """Build the ``object`` schema of a tool's arguments."""
    return {
        "type": "object",
        "properties": properties or {},
        "required": required or [],
    }
