import json
import os
from pathlib import Path
from typing import Callable, Any, TypeAlias

from ocsf_model_compiler.exceptions import SchemaException

# Type aliases for JSON-compatible types. See https://json.org.
# Yes, these are circular, and Python is OK with that.

# JValue is type alias for types compatible with JSON values.
JValue: TypeAlias = "JObject | JArray | str | int | float | bool | None"
# JObject is a type alias for dictionary compatible with a JSON object.
JObject: TypeAlias = "dict[str, JValue]"
# JArray is a type alias for types compatible with a JSON array.
JArray: TypeAlias = "list[JValue] | tuple[JValue]"


def json_type_from_value(value: Any) -> str:
    """
    Return JSON type for a Python value. See https://json.org.
    This is intended for error messages.
    """
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    if isinstance(value, str):
        return "string"
    # bool is a subclass of int, so it must be checked first
    if isinstance(value, bool):
        if value:
            return "true"
        return "false"
    if isinstance(value, int):
        return "number (int)"
    if isinstance(value, float):
        return "number (float)"
    if value is None:
        return "null"
    return f"non-JSON type: {type(value).__name__}"


def read_json_object_file(path: Path) -> JObject:
    with open(path, encoding="utf-8") as f:
        v = json.load(f)
        if not isinstance(v, dict):
            t = json_type_from_value(v)
            raise TypeError(
                f"Schema file contains a JSON {t} value, but should contain an object:"
                f" {path}"
            )
        return v


def read_structured_items(
    base_path: Path, kind: str, item_callback_fn: Callable[[Path, JObject], None] = None
) -> JObject:
    """
    Read schema structured items found in `kind` directory under `base_path`,
    recursively, and returns dict with unprocessed items, each keyed by their name
    attribute. Files are visited in sorted path order so the result is stable across
    file systems.
    """
    # event classes can be organized in subdirectories, so we must walk to find all the
    # event class JSON files
    item_path = base_path / kind
    file_paths = []
    for dir_path, dir_names, file_names in os.walk(item_path):
        for file_name in file_names:
            if file_name.endswith(".json"):
                file_paths.append(Path(dir_path, file_name))

    items = {}
    for file_path in sorted(file_paths):
        obj = read_json_object_file(file_path)
        name = obj.get("name")

        # The way this is tested, "no value" happens when attribute is missing,
        # JSON null (Python None), or an empty value (an empty string, JSON
        # array, JSON object, or even a numeric zero).
        if not name:
            raise SchemaException(
                f'The "name" value in {kind} file must have a value: {file_path}'
            )

        # Ensure name is a string
        if not isinstance(name, str):
            raise SchemaException(
                f'The "name" value in {kind} file must be a string,'
                f" but got {json_type_from_value(name)}: {file_path}"
            )

        if name in items:
            existing = items[name]
            raise SchemaException(
                f'Collision of "name" in {kind} file: "{name}" with caption'
                f' "{obj.get("caption", "")}", collides with {kind} with'
                f' caption "{existing.get("caption", "")}", file: {file_path}'
            )
        items[name] = obj
        if item_callback_fn:
            item_callback_fn(file_path, obj)

    return items
