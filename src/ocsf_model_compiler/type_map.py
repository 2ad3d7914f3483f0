from typing import NamedTuple


class TypeMapping(NamedTuple):
    # Annotation used on the pydantic model field
    validator: str
    # Annotation used on the companion TypedDict
    static: str


STRING = TypeMapping("StrictStr", "str")
INTEGER = TypeMapping("StrictInt", "int")
BOOLEAN = TypeMapping("StrictBool", "bool")
FLOAT = TypeMapping("StrictFloat", "float")
JSON = TypeMapping("JsonValue", "Any")
# Open-world fallback: an OCSF type this compiler does not know about is accepted as is
PERMISSIVE = TypeMapping("Any", "Any")

_TYPE_MAP: dict[str, TypeMapping] = {
    # Primitive types
    "string_t": STRING,
    "integer_t": INTEGER,
    "long_t": INTEGER,
    "boolean_t": BOOLEAN,
    "float_t": FLOAT,
    "double_t": FLOAT,
    "json_t": JSON,
    "bytestring_t": STRING,
    # Milliseconds since the epoch
    "timestamp_t": INTEGER,
    "port_t": INTEGER,
    # String subtypes
    "cidr_t": STRING,
    "country_t": STRING,
    "datetime_t": STRING,
    "email_t": STRING,
    "file_hash_t": STRING,
    "file_name_t": STRING,
    "file_path_t": STRING,
    "fingerprint_t": STRING,
    "hostname_t": STRING,
    "ip_t": STRING,
    "mac_t": STRING,
    "path_t": STRING,
    "process_name_t": STRING,
    "resource_uid_t": STRING,
    "subnet_t": STRING,
    "url_t": STRING,
    "username_t": STRING,
    "uuid_t": STRING,
}


def map_type(ocsf_type: str) -> TypeMapping:
    """Map an OCSF scalar type name to its validator and static type expressions."""
    return _TYPE_MAP.get(ocsf_type, PERMISSIVE)


def is_primitive_type(ocsf_type: str) -> bool:
    """Return True if type names a scalar type rather than an object."""
    return ocsf_type.endswith("_t")
