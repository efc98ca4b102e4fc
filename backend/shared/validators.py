"""Validation helpers for list-valued server settings."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic_settings import EnvSettingsSource

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo


def _require_items(items: list[str], *, allow_empty: bool) -> list[str]:
    if not allow_empty and not items:
        raise ValueError("String list value must not be empty")
    return items


def parse_string_list(value: str | list[str], *, allow_empty: bool = False) -> list[str]:
    """Turn an env value into a list of strings.

    ``value`` may already be a list, a JSON array string ('["a","b"]') or a
    comma separated string ('a,b'). Blank CSV segments are skipped. Raises
    ValueError for blank input, malformed JSON, or (unless ``allow_empty``)
    an empty result.
    """
    if isinstance(value, list):
        return _require_items(value, allow_empty=allow_empty)

    text = value.strip()
    if not text:
        raise ValueError("String list value must not be empty")

    if not text.startswith("["):
        return _require_items([item.strip() for item in text.split(",") if item.strip()], allow_empty=allow_empty)

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON array: {e}") from e
    if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
        raise ValueError("JSON value must be an array of strings")
    return _require_items(parsed, allow_empty=allow_empty)


class StringListEnvSettingsSource(EnvSettingsSource):
    """Env source that hands list[str] fields to their validators as raw strings.

    Without this, pydantic-settings JSON-decodes list fields before validation
    and rejects the CSV form.
    """

    string_list_fields = frozenset({"cors_origins"})

    def prepare_field_value(
        self,
        field_name: str,
        field: FieldInfo,
        value: Any,  # noqa: ANN401
        value_is_complex: bool,  # noqa: FBT001
    ) -> Any:  # noqa: ANN401
        if field_name in self.string_list_fields and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)
