"""Argument validation against a tool's declared parameters."""

from typing import Any

from voice_inbox.orchestrator.catalog import ParamSpec, ParamType, ToolDefinition
from voice_inbox.orchestrator.errors import ValidationError


def validate_arguments(tool: ToolDefinition, arguments: Any) -> dict[str, Any]:
    """Check ``arguments`` against ``tool`` and return a normalised copy.

    - undeclared parameters are rejected
    - ``None`` counts as absent; blank strings count as absent for required params
    - every required parameter must be present
    - every supplied value must match its declared type (and enum or maximum, if any)
    - declared defaults fill in missing optional parameters

    Raises ValidationError naming the first offending parameter.
    """
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, dict):
        raise ValidationError("arguments", "must be a JSON object")

    for key in arguments:
        if tool.param(key) is None:
            raise ValidationError(key, f"not a parameter of {tool.name.value}")

    normalized: dict[str, Any] = {}
    for spec in tool.params:
        value = arguments.get(spec.name)
        if isinstance(value, str) and spec.required and not value.strip():
            value = None
        if value is None:
            if spec.required:
                raise ValidationError(spec.name, "is required")
            if spec.default is not None:
                normalized[spec.name] = spec.default
            continue
        normalized[spec.name] = _check_type(spec, value)
    return normalized


def _check_type(spec: ParamSpec, value: Any) -> Any:
    expected = spec.type
    if expected is ParamType.STRING:
        if not isinstance(value, str):
            raise ValidationError(spec.name, f"expected a string, got {_json_type(value)}")
    elif expected in (ParamType.NUMBER, ParamType.INTEGER):
        # bool is an int subclass in Python but not a JSON number
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(spec.name, f"expected a number, got {_json_type(value)}")
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if expected is ParamType.INTEGER and not isinstance(value, int):
            raise ValidationError(spec.name, "expected an integer")
        if spec.maximum is not None and value > spec.maximum:
            raise ValidationError(spec.name, f"must be at most {spec.maximum}")
    elif expected is ParamType.BOOLEAN:
        if not isinstance(value, bool):
            raise ValidationError(spec.name, f"expected a boolean, got {_json_type(value)}")
    elif expected is ParamType.ARRAY:
        if not isinstance(value, list):
            raise ValidationError(spec.name, f"expected an array, got {_json_type(value)}")
        item_spec = ParamSpec(f"{spec.name}[]", spec.item_type or ParamType.STRING, "")
        value = [_check_type(item_spec, item) for item in value]

    if spec.enum is not None and value not in spec.enum:
        allowed = ", ".join(repr(v) for v in spec.enum)
        raise ValidationError(spec.name, f"must be one of {allowed}")
    return value


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__
