"""
Projection of OCSF schema names onto Python identifiers.

Every function here is pure and deterministic. Emitted module paths, class names and
enum members all derive from these, so changing any of them changes generated output.
"""

import keyword
import re

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]+")
_LOWER_UPPER_RE = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_RE = re.compile(r"([A-Z])([A-Z][a-z])")
_LEADING_DIGITS_RE = re.compile(r"^\d+")

# Attribute names that would shadow pydantic BaseModel members, or builtins used in
# generated annotations
_RESERVED_FIELD_NAMES = frozenset(
    [
        "construct",
        "copy",
        "dict",
        "fields",
        "float",
        "from_orm",
        "json",
        "list",
        "parse_file",
        "parse_obj",
        "parse_raw",
        "schema",
        "schema_json",
        "update_forward_refs",
        "validate",
    ]
)


def to_type_name(native_name: str) -> str:
    """
    Convert a snake_case OCSF name to a PascalCase type name.

    Acronyms get no special treatment, so dns_activity becomes DnsActivity. Leading
    underscores (used by abstract objects like _entity) are dropped.
    """
    cleaned = native_name.lstrip("_")
    return "".join(
        segment[:1].upper() + segment[1:].lower() for segment in cleaned.split("_")
    )


def to_enum_member(caption: str) -> str:
    """Convert an enum caption like "Set Attributes" to SET_ATTRIBUTES."""
    name = _NON_ALNUM_RE.sub("_", caption).strip("_").upper()
    if name and name[0].isdigit():
        name = f"V_{name}"
    return name or "UNKNOWN"


def to_version_slug(version: str) -> str:
    """Convert "1.7.0" to "v1_7". Patch releases share a slug."""
    parts = version.split(".")
    major = parts[0]
    minor = parts[1] if len(parts) > 1 else "0"
    # 1.0.0-rc.2 style versions carry their prerelease tag on the last part, but be
    # careful anyway with things like "1.8-dev"
    match = _LEADING_DIGITS_RE.match(minor)
    if match:
        minor = match.group(0)
    return f"v{major}_{minor}"


def to_file_name(type_name: str) -> str:
    """
    Convert a PascalCase type name back to snake_case.

    This is a best-effort inverse of to_type_name and does not round-trip every name
    (for example "File2" becomes "file2", not "file_2").
    """
    name = _LOWER_UPPER_RE.sub(r"\1_\2", type_name)
    name = _ACRONYM_RE.sub(r"\1_\2", name)
    return name.lower()


def to_module_name(type_name: str) -> str:
    name = to_file_name(type_name)
    if keyword.iskeyword(name):
        return f"{name}_"
    return name


def to_field_name(attribute_name: str) -> str:
    """
    Return a Python field name for an attribute. When the result differs from the
    attribute name, the emitted field needs an alias.
    """
    name = attribute_name.lstrip("_")
    if (
        name != attribute_name
        or keyword.iskeyword(name)
        or name in _RESERVED_FIELD_NAMES
    ):
        name = f"{name}_"
    return name


def to_constant_name(attribute_name: str) -> str:
    return attribute_name.upper()
