"""Utility functions for the application."""

from __future__ import annotations

import re
from typing import Any, TypeVar

from flask import request
from flask_wtf import FlaskForm  # type: ignore
from werkzeug.datastructures import MultiDict

from .errors import ValidationError

FormT = TypeVar("FormT", bound="FlaskForm")

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


class APIForm(FlaskForm):
    """Base form for JSON endpoints; requests carry no CSRF token."""

    class Meta:
        csrf = False


def to_snake_case(name: str) -> str:
    """Convert a camelCase JSON key to a form field name."""
    return _CAMEL_BOUNDARY.sub(r"_\1", name).lower()


def json_formdata(payload: dict[str, Any] | None, prefix: str = "") -> MultiDict:
    """Flatten a JSON object into form data WTForms can bind.

    Nested objects become ``parent-child`` keys, the naming ``FormField`` uses
    for its subfields. Scalars are stringified so that ``0`` still counts as
    input.
    """
    data: MultiDict = MultiDict()
    for key, value in (payload or {}).items():
        name = f"{prefix}{to_snake_case(key)}"
        if value is None:
            continue
        if isinstance(value, dict):
            for sub_key, sub_value in json_formdata(value, f"{name}-").items(
                multi=True
            ):
                data.add(sub_key, sub_value)
        elif isinstance(value, (list, tuple)):
            for item in value:
                data.add(name, str(item))
        elif isinstance(value, bool):
            data.add(name, "y" if value else "")
        else:
            data.add(name, str(value))
    return data


def request_json() -> dict[str, Any]:
    """Return the JSON object sent with the current request."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")
    return payload


def validate_form(
    form_class: type[FormT], payload: dict[str, Any] | None = None
) -> FormT:
    """Bind a JSON payload to ``form_class`` and validate it.

    Raises:
        ValidationError: With the first field error if validation fails.
    """
    if payload is None:
        payload = request_json()
    form = form_class(formdata=json_formdata(payload))
    if not form.validate():
        for field_name, errors in form.errors.items():
            message = errors[0] if isinstance(errors, list) and errors else errors
            if isinstance(message, dict):
                message = next(iter(message.values()))[0]
            field = getattr(form, field_name, None) if field_name else None
            label = field.label.text if field is not None else field_name
            raise ValidationError(f"{label}: {message}")
        raise ValidationError()
    return form
