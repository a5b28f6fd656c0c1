"""
Argument schema engine.

Validates a flat mapping of named arguments against per-argument type
declarations, substituting defaults and coercing the loosely typed values a
block client sends (everything arrives as text from a query string) into
their declared types.

Opaque-JSON arguments carry a nested JSON Schema. They are parsed before the
main pass and validated by :meth:`SchemaEngine.validate_nested`, which
recurses back into :meth:`SchemaEngine.validate` for object properties and
finishes with a structural ``jsonschema`` check.

Example:
    ```python
    engine = SchemaEngine()
    schema = {
        "streamName": ArgumentSpec(ArgumentType.STRING, default="demo"),
        "limit": ArgumentSpec(ArgumentType.STRING, default="10"),
    }
    result = engine.validate(schema, {})
    assert result.data == {"streamName": "demo", "limit": "10"}
    ```
"""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\[([^\[\]]+)\]")


class ArgumentType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    JSON = "json"
    # Nested schemas without a declared type: no coercion.
    ANY = "any"


_JSON_SCHEMA_TYPES = {
    "string": ArgumentType.STRING,
    "number": ArgumentType.NUMBER,
    "integer": ArgumentType.NUMBER,
    "boolean": ArgumentType.BOOLEAN,
    "array": ArgumentType.ARRAY,
    "object": ArgumentType.OBJECT,
}


@dataclass(frozen=True)
class ArgumentSpec:
    """
    Type declaration for one operation argument.

    Attributes:
        type: Declared argument type
        default: Value substituted when the argument is absent or empty
        description: Human-readable description for listings
        schema: Nested JSON Schema. Required for ``ArgumentType.JSON``,
            optional refinement for arrays and objects.
        required: Explicit requirement flag. When unset, an argument is
            required exactly when it has no usable default.
    """

    type: ArgumentType = ArgumentType.STRING
    default: Any = None
    description: str | None = None
    schema: Mapping[str, Any] | None = None
    required: bool | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.type, ArgumentType):
            object.__setattr__(self, "type", ArgumentType(self.type))
        if self.type is ArgumentType.JSON and not self.schema:
            raise ValueError("json arguments must declare a nested schema")

    def has_default(self, name: str) -> bool:
        """True when ``default`` is usable; a ``[name]`` placeholder is not."""
        if self.default is None or self.default == "":
            return False
        return self.default != f"[{name}]"

    def is_required(self, name: str) -> bool:
        if self.required is not None:
            return self.required
        return not self.has_default(name)

    @classmethod
    def from_json_schema(cls, schema: Mapping[str, Any], *, required: bool = False) -> ArgumentSpec:
        """Build a declaration for one property of a nested JSON Schema."""
        declared = schema.get("type")
        arg_type = _JSON_SCHEMA_TYPES.get(declared, ArgumentType.ANY) if isinstance(declared, str) else ArgumentType.ANY
        nested = schema if arg_type in (ArgumentType.ARRAY, ArgumentType.OBJECT) else None
        return cls(
            type=arg_type,
            default=schema.get("default"),
            description=schema.get("description"),
            schema=nested,
            required=required,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type.value}
        if self.default is not None:
            data["default"] = self.default
        if self.description:
            data["description"] = self.description
        if self.schema is not None:
            data["schema"] = dict(self.schema)
        if self.required is not None:
            data["required"] = self.required
        return data


class FieldErrorCode(str, Enum):
    MISSING_REQUIRED = "MissingRequired"
    INVALID_TYPE = "InvalidType"
    INVALID_JSON = "InvalidJSON"
    INVALID_VALUE = "InvalidValue"


@dataclass(frozen=True)
class FieldError:
    """One per-field validation failure; ``detail`` feeds the message."""

    code: FieldErrorCode
    field: str
    detail: str = ""

    @property
    def message(self) -> str:
        if self.code is FieldErrorCode.MISSING_REQUIRED:
            return f"Missing required property: {self.field}"
        if self.code is FieldErrorCode.INVALID_TYPE:
            return f"Property {self.field} has invalid type. Expected {self.detail}"
        if self.code is FieldErrorCode.INVALID_JSON:
            return f"Invalid JSON for {self.field}: {self.detail}"
        return f"Validation failed at '{self.field}': {self.detail}"

    def prefixed(self, prefix: str) -> FieldError:
        """Return a copy whose field path is nested under ``prefix``."""
        if self.field.startswith("["):
            return FieldError(self.code, f"{prefix}{self.field}", self.detail)
        return FieldError(self.code, f"{prefix}.{self.field}", self.detail)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code.value, "field": self.field, "message": self.message}


@dataclass
class ValidationResult:
    """Outcome of a validation pass. ``data`` is set only when valid."""

    valid: bool
    errors: list[FieldError] = field(default_factory=list)
    data: Any = None

    @classmethod
    def ok(cls, data: Any) -> ValidationResult:
        return cls(valid=True, data=data)

    @classmethod
    def failed(cls, errors: list[FieldError]) -> ValidationResult:
        return cls(valid=False, errors=list(errors))

    @property
    def messages(self) -> list[str]:
        return [error.message for error in self.errors]

    def __bool__(self) -> bool:
        return self.valid


def _is_absent(value: Any) -> bool:
    return value is None or value == ""


def _missing(name: str) -> FieldError:
    return FieldError(FieldErrorCode.MISSING_REQUIRED, name)


def _invalid_type(name: str, expected: ArgumentType) -> FieldError:
    return FieldError(FieldErrorCode.INVALID_TYPE, name, expected.value)


def _parse_json(value: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(value)
    except (ValueError, RecursionError):
        return False, None


def coerce_value(value: Any, arg_type: ArgumentType) -> tuple[bool, Any]:
    """
    Coerce ``value`` to ``arg_type``.

    Returns:
        ``(True, coerced)`` on success, ``(False, None)`` when the value
        cannot represent the declared type.
    """
    if arg_type is ArgumentType.STRING:
        if isinstance(value, bool):
            return True, "true" if value else "false"
        if isinstance(value, (list, dict)):
            return True, json.dumps(value, separators=(",", ":"))
        return True, str(value)

    if arg_type is ArgumentType.NUMBER:
        if isinstance(value, bool):
            return True, int(value)
        if isinstance(value, float) and math.isnan(value):
            return False, None
        if isinstance(value, (int, float)):
            return True, value
        if isinstance(value, str):
            text = value.strip()
            if "_" in text:
                return False, None
            try:
                return True, int(text)
            except ValueError:
                pass
            try:
                number = float(text)
            except ValueError:
                return False, None
            if math.isnan(number):
                return False, None
            return True, number
        return False, None

    if arg_type is ArgumentType.BOOLEAN:
        if isinstance(value, str):
            return True, value.strip().lower() in ("true", "1")
        return True, bool(value)

    if arg_type is ArgumentType.ARRAY:
        if isinstance(value, (list, tuple)):
            return True, list(value)
        if isinstance(value, str):
            parsed_ok, parsed = _parse_json(value)
            if parsed_ok and isinstance(parsed, list):
                return True, parsed
        return False, None

    if arg_type is ArgumentType.OBJECT:
        if isinstance(value, Mapping):
            return True, dict(value)
        if isinstance(value, str):
            parsed_ok, parsed = _parse_json(value)
            if parsed_ok and isinstance(parsed, dict):
                return True, parsed
        return False, None

    # ANY and JSON values are taken as they are.
    return True, value


def check_nested_schema(schema: Mapping[str, Any]) -> None:
    """Raise ``ValueError`` if ``schema`` is not a valid Draft 2020-12 schema."""
    try:
        Draft202012Validator.check_schema(dict(schema))
    except SchemaError as exc:
        raise ValueError(f"Invalid nested schema: {exc.message}") from exc


def arguments_from_template(template: str) -> dict[str, ArgumentSpec]:
    """Derive a schema from ``[placeholder]`` names: one required string each."""
    arguments: dict[str, ArgumentSpec] = {}
    for name in PLACEHOLDER_PATTERN.findall(template):
        arguments.setdefault(name.strip(), ArgumentSpec(ArgumentType.STRING, required=True))
    return arguments


class SchemaEngine:
    """Validates argument mappings against ``ArgumentSpec`` declarations."""

    def validate(self, schema: Mapping[str, ArgumentSpec], data: Mapping[str, Any] | None) -> ValidationResult:
        """
        Validate ``data`` against ``schema``.

        All errors of the pass are collected together. A malformed opaque-JSON
        value aborts at once with a single ``InvalidJSON`` error.

        Returns:
            ValidationResult whose ``data`` holds every declared key that was
            supplied or defaulted, in declaration order.
        """
        data = data or {}
        errors: list[FieldError] = []
        opaque: dict[str, Any] = {}

        for name, spec in schema.items():
            if spec.type is not ArgumentType.JSON:
                continue
            raw = data.get(name)
            if _is_absent(raw):
                if not spec.has_default(name):
                    continue
                raw = spec.default
            if isinstance(raw, str):
                try:
                    parsed = json.loads(raw)
                except json.JSONDecodeError as exc:
                    errors.append(FieldError(FieldErrorCode.INVALID_JSON, name, exc.msg))
                    return ValidationResult.failed(errors)
                except RecursionError:
                    errors.append(FieldError(FieldErrorCode.INVALID_JSON, name, "JSON nested too deeply"))
                    return ValidationResult.failed(errors)
            else:
                parsed = raw
            nested = self.validate_nested(spec.schema or {}, parsed, field=name)
            if nested.valid:
                opaque[name] = nested.data
            else:
                errors.extend(nested.errors)

        validated: dict[str, Any] = {}
        for name, spec in schema.items():
            value = data.get(name)
            if spec.type is ArgumentType.JSON:
                if name not in opaque and _is_absent(value) and spec.is_required(name):
                    errors.append(_missing(name))
                continue

            if _is_absent(value):
                if spec.has_default(name):
                    validated[name] = spec.default
                elif spec.is_required(name):
                    errors.append(_missing(name))
                continue

            if spec.schema is not None and spec.type in (ArgumentType.ARRAY, ArgumentType.OBJECT):
                nested = self.validate_nested(spec.schema, value, field=name)
                if nested.valid:
                    validated[name] = nested.data
                else:
                    errors.extend(nested.errors)
                continue

            ok, coerced = coerce_value(value, spec.type)
            if ok:
                validated[name] = coerced
            else:
                errors.append(_invalid_type(name, spec.type))

        if errors:
            logger.debug("Argument validation failed: %s", [error.message for error in errors])
            return ValidationResult.failed(errors)

        # Opaque values are merged back parsed, in declaration order.
        validated.update(opaque)
        return ValidationResult.ok({name: validated[name] for name in schema if name in validated})

    def validate_nested(self, schema: Mapping[str, Any], value: Any, *, field: str = "value") -> ValidationResult:
        """
        Validate one value against a nested JSON Schema.

        The value is coerced to the schema's declared type. Object properties
        are validated by a recursive :meth:`validate` call, keeping any extra
        keys, and the result is finally checked structurally with
        ``jsonschema`` for the keywords the flat declarations do not cover.
        """
        spec = ArgumentSpec.from_json_schema(schema, required=True)
        ok, coerced = coerce_value(value, spec.type)
        if not ok:
            return ValidationResult.failed([_invalid_type(field, spec.type)])

        properties = schema.get("properties")
        if spec.type is ArgumentType.OBJECT and isinstance(properties, Mapping) and properties:
            required = set(schema.get("required") or ())
            children = {
                name: ArgumentSpec.from_json_schema(prop, required=name in required)
                for name, prop in properties.items()
                if isinstance(prop, Mapping)
            }
            result = self.validate(children, coerced)
            if not result.valid:
                return ValidationResult.failed([error.prefixed(field) for error in result.errors])
            merged = dict(coerced)
            merged.update(result.data)
            coerced = merged

        items = schema.get("items")
        if spec.type is ArgumentType.ARRAY and isinstance(items, Mapping) and items:
            elements = []
            for index, element in enumerate(coerced):
                result = self.validate_nested(items, element, field=f"{field}[{index}]")
                if not result.valid:
                    return result
                elements.append(result.data)
            coerced = elements

        structural = self._structural_errors(schema, coerced, field)
        if structural:
            return ValidationResult.failed(structural)
        return ValidationResult.ok(coerced)

    @staticmethod
    def _structural_errors(schema: Mapping[str, Any], value: Any, field: str) -> list[FieldError]:
        validator = Draft202012Validator(dict(schema))
        errors = []
        for error in sorted(validator.iter_errors(value), key=lambda e: [str(p) for p in e.absolute_path]):
            suffix = "".join(f"[{p}]" if isinstance(p, int) else f".{p}" for p in error.absolute_path)
            path = f"{field}{suffix}"
            errors.append(FieldError(FieldErrorCode.INVALID_VALUE, path, error.message))
        return errors


__all__ = [
    "ArgumentType",
    "ArgumentSpec",
    "FieldErrorCode",
    "FieldError",
    "ValidationResult",
    "SchemaEngine",
    "coerce_value",
    "check_nested_schema",
    "arguments_from_template",
    "PLACEHOLDER_PATTERN",
]
