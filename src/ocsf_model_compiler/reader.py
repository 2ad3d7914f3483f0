import logging
from copy import deepcopy
from pathlib import Path
from typing import Any, Optional

from ocsf_model_compiler.exceptions import SchemaException
from ocsf_model_compiler.jsonish import (
    JObject,
    json_type_from_value,
    read_json_object_file,
    read_structured_items,
)
from ocsf_model_compiler.model import (
    EVENT,
    OBJECT,
    OPTIONAL,
    AttributeDefinition,
    EntityDefinition,
    EntityKind,
    EnumValue,
    ParsedSchema,
    SharedEnum,
)
from ocsf_model_compiler.type_map import is_primitive_type
from ocsf_model_compiler.utils import (
    deep_merge,
    is_hidden_class,
    is_hidden_object,
    strip_html,
)

logger = logging.getLogger(__name__)

DATETIME_PROFILE = "datetime"


class SchemaReader:
    """
    Reads one raw OCSF schema tree (a git clone of https://github.com/ocsf/ocsf-schema)
    into unresolved entity definitions. Includes are resolved and every entity attribute
    is merged with its dictionary attribute, but "extends" inheritance is left to the
    resolver.
    """

    def __init__(self, schema_path: Path) -> None:
        self.schema_path: Path = schema_path
        self.warning_count: int = 0

        self._version: str = "0.0.0-undefined"
        self._categories: JObject = {}
        self._dictionary_attributes: JObject = {}
        self._dictionary_types: JObject = {}
        self._classes: JObject = {}
        self._objects: JObject = {}
        self._profiles: JObject = {}
        self._include_cache: dict[Path, JObject] = {}
        self._add_datetime: bool = False

    def read(self) -> ParsedSchema:
        if not self.schema_path.is_dir():
            raise FileNotFoundError(f"Schema path does not exist: {self.schema_path}")

        logger.info("Reading schema: %s", self.schema_path)
        self._read_version()
        self._categories = read_json_object_file(self.schema_path / "categories.json")
        dictionary = read_json_object_file(self.schema_path / "dictionary.json")
        self._dictionary_attributes = _json_object(
            dictionary.setdefault("attributes", {}), "dictionary attributes"
        )
        types = _json_object(dictionary.setdefault("types", {}), "dictionary types")
        self._dictionary_types = _json_object(
            types.setdefault("attributes", {}), "dictionary types attributes"
        )
        self._classes = read_structured_items(self.schema_path, "events")
        self._objects = read_structured_items(self.schema_path, "objects")
        self._profiles = read_structured_items(
            self.schema_path, "profiles", item_callback_fn=self._cache_profile
        )

        self._resolve_includes()
        self._check_datetime_support()

        objects = {
            name: self._parse_entity(OBJECT, name, raw)
            for name, raw in self._objects.items()
        }
        events = {
            name: self._parse_entity(EVENT, name, raw)
            for name, raw in self._classes.items()
        }
        logger.info(
            "Read %d objects, %d event classes, and %d dictionary attributes",
            len(objects),
            len(events),
            len(self._dictionary_attributes),
        )

        return ParsedSchema(
            version=self._version,
            categories=self._parse_categories(),
            objects=objects,
            events=events,
            enums=self._extract_shared_enums(),
        )

    def _warning(self, message: str, *args, **kwargs) -> None:
        self.warning_count += 1
        logger.warning(message, *args, **kwargs)

    def _read_version(self) -> None:
        version_path = self.schema_path / "version.json"
        try:
            obj = read_json_object_file(version_path)
            self._version = obj["version"]
        except FileNotFoundError as e:
            raise SchemaException(
                "Schema version file does not exist (is this a schema directory?):"
                f" {version_path}"
            ) from e
        except KeyError as e:
            raise SchemaException(
                'The "version" key is missing in the schema version file:'
                f" {version_path}"
            ) from e

    def _cache_profile(self, path: Path, profile: JObject) -> None:
        self._include_cache[path] = profile

    def _parse_categories(self) -> dict[str, int]:
        categories = {}
        category_details = _json_object(
            self._categories.get("attributes", {}), "categories attributes"
        )
        for key, detail in category_details.items():
            uid = _json_object(detail, f'category "{key}"').get("uid")
            if not isinstance(uid, int):
                raise SchemaException(
                    f'Category "{key}" "uid" must be an integer but got'
                    f" {json_type_from_value(uid)}"
                )
            categories[key] = uid
        return categories

    def _resolve_includes(self) -> None:
        for cls_name, cls in self._classes.items():
            self._resolve_item_includes(cls, f'class "{cls_name}"')
        for obj_name, obj in self._objects.items():
            self._resolve_item_includes(obj, f'object "{obj_name}"')

    def _resolve_item_includes(self, item: JObject, context: str) -> None:
        item_attributes = _json_object(
            item.setdefault("attributes", {}), f"{context} attributes"
        )

        # First, resolve $include at "attributes" level. These are commonly used for
        # profiles. Only the "attributes" of the included item are merged, and the
        # item's own attribute details win.
        #
        # The value of the "$include" key can be single string or an array of strings,
        # each a path relative to the base directory of the schema:
        # {
        #    "name": "foo",
        #    "attributes": {
        #       "$include": ["profiles/bar.json", "profiles/baz.json"],
        #       "qux": {...}
        #    }
        # }
        if "$include" in item_attributes:
            sub_context = f"{context} attributes.$include"
            include_value = item_attributes.pop("$include")
            if isinstance(include_value, str):
                include_value = [include_value]
            elif not isinstance(include_value, list):
                raise TypeError(
                    f"Illegal {sub_context} value type:"
                    f" expected string or array (list), but got"
                    f" {json_type_from_value(include_value)}"
                )
            for include_file_name in include_value:
                self._merge_attributes_include(
                    item, sub_context, self.schema_path / include_file_name
                )

        # Second, resolve $include in attribute details. An include at this level is a
        # JSON object holding exactly the details to merge in (historically common enum
        # values). The attribute's own details win:
        # {
        #    "attributes": {
        #       "baz_id": {"$include": "enum/baz.json", ...}
        #    }
        # }
        item_attributes = item["attributes"]
        for attribute_name, attribute in item_attributes.items():
            if isinstance(attribute, dict) and "$include" in attribute:
                sub_context = f"{context} attributes.{attribute_name}.$include"
                include_value = attribute.pop("$include")
                if not isinstance(include_value, str):
                    raise TypeError(
                        f"Illegal {sub_context} value type: expected string,"
                        f" but got {json_type_from_value(include_value)}"
                    )
                new_attribute = deepcopy(
                    self._get_include_contents(
                        sub_context, self.schema_path / include_value
                    )
                )
                deep_merge(new_attribute, attribute)
                item_attributes[attribute_name] = new_attribute

    def _merge_attributes_include(
        self, item: JObject, context: str, include_path: Path
    ) -> None:
        include_item = self._get_include_contents(context, include_path)
        if "attributes" not in include_item:
            self._warning(
                "Include file suspiciously has no attributes: %s", include_path
            )
            return

        attributes = deepcopy(
            _json_object(include_item["attributes"], f"{include_path} attributes")
        )
        profile_name = None
        if include_item.get("meta") == "profile":
            if "name" not in include_item:
                raise SchemaException(f'Profile "name" is missing in {context}')
            profile_name = include_item["name"]

        annotations = include_item.get("annotations", {})
        item_attributes = item["attributes"]
        for attribute_name, attribute in attributes.items():
            # Only add annotation mappings that do not exist already in attribute
            for key, value in annotations.items():
                attribute.setdefault(key, value)
            if attribute_name in item_attributes:
                deep_merge(attribute, item_attributes[attribute_name])
            elif profile_name:
                attribute["profile"] = profile_name

        # Keep the item's own attributes that the include did not mention
        for attribute_name, attribute in item_attributes.items():
            if attribute_name not in attributes:
                attributes[attribute_name] = attribute

        item["attributes"] = attributes

    def _get_include_contents(self, context: str, include_path: Path) -> JObject:
        if include_path in self._include_cache:
            return self._include_cache[include_path]

        try:
            include_item = read_json_object_file(include_path)
        except FileNotFoundError as e:
            raise SchemaException(
                f"{context} file does not exist: {include_path}"
            ) from e
        self._include_cache[include_path] = include_item
        return include_item

    def _check_datetime_support(self) -> None:
        """
        Datetime siblings of "timestamp_t" attributes are added only when the schema
        defines both the "datetime" profile and the "datetime_t" dictionary type.
        """
        got_datetime_profile = DATETIME_PROFILE in self._profiles
        got_datetime_t = "datetime_t" in self._dictionary_types
        if got_datetime_profile and got_datetime_t:
            logger.info(
                'Datetime siblings of attributes with the "timestamp_t" type will be'
                ' added because the schema defines the "datetime" profile and the'
                ' "datetime_t" dictionary type.'
            )
            self._add_datetime = True
        elif got_datetime_profile:
            raise SchemaException(
                'Schema defines "datetime" profile but does not define "datetime_t"'
                " dictionary type"
            )
        elif got_datetime_t:
            raise SchemaException(
                'Schema defines "datetime_t" dictionary type but does not define'
                ' "datetime" profile'
            )

    def _parse_entity(
        self, kind: EntityKind, name: str, raw: JObject
    ) -> EntityDefinition:
        context = f'{kind} "{name}"'

        closed = raw.get("closed")
        if closed is not None and not isinstance(closed, bool):
            raise SchemaException(
                f'{context} "closed" must be a boolean but got'
                f" {json_type_from_value(closed)}"
            )

        extends = raw.get("extends")
        if extends is not None and not isinstance(extends, str):
            raise SchemaException(
                f'{context} "extends" must be a string but got'
                f" {json_type_from_value(extends)}"
            )

        attributes: dict[str, AttributeDefinition] = {}
        datetime_additions: dict[str, AttributeDefinition] = {}
        for attribute_name, overrides in raw.get("attributes", {}).items():
            attribute = self._parse_attribute(context, attribute_name, overrides)
            attributes[attribute_name] = attribute
            if self._add_datetime and attribute.ocsf_type == "timestamp_t":
                dt_name = f"{attribute_name}_dt"
                datetime_additions[dt_name] = AttributeDefinition(
                    name=dt_name,
                    ocsf_type="datetime_t",
                    is_array=attribute.is_array,
                    requirement=OPTIONAL,
                    caption=attribute.caption,
                    description=attribute.description,
                    profile=DATETIME_PROFILE,
                )
        for dt_name, dt_attribute in datetime_additions.items():
            attributes.setdefault(dt_name, dt_attribute)

        if kind == EVENT:
            uid = raw.get("uid")
            if uid is not None and not isinstance(uid, int):
                raise SchemaException(
                    f'{context} "uid" must be an integer but got'
                    f" {json_type_from_value(uid)}"
                )
            is_hidden = is_hidden_class(name, raw)
        else:
            uid = None
            is_hidden = is_hidden_object(name)

        return EntityDefinition(
            kind=kind,
            name=name,
            extends=extends,
            caption=raw.get("caption", ""),
            description=strip_html(raw.get("description", "")),
            attributes=attributes,
            closed=closed,
            category=raw.get("category") if kind == EVENT else None,
            uid=uid,
            is_hidden=is_hidden,
        )

    def _parse_attribute(
        self, context: str, attribute_name: str, overrides: Any
    ) -> AttributeDefinition:
        if not isinstance(overrides, dict):
            raise SchemaException(
                f'{context} attribute "{attribute_name}" must be an object but got'
                f" {json_type_from_value(overrides)}"
            )
        if attribute_name not in self._dictionary_attributes:
            raise SchemaException(
                f'{context} uses undefined attribute "{attribute_name}"'
            )

        merged = deepcopy(self._dictionary_attributes[attribute_name])
        deep_merge(merged, overrides)

        ocsf_type = merged.get("type")
        if not isinstance(ocsf_type, str):
            raise SchemaException(
                f'{context} attribute "{attribute_name}" does not define "type"'
            )
        if ocsf_type == "object_t":
            object_type = merged.get("object_type")
            if not object_type:
                raise SchemaException(
                    f'{context} attribute "{attribute_name}" has type "object_t" but'
                    ' no "object_type"'
                )
        elif ocsf_type in self._dictionary_types or is_primitive_type(ocsf_type):
            object_type = None
        else:
            object_type = ocsf_type
            ocsf_type = "object_t"

        if object_type is not None and object_type not in self._objects:
            raise SchemaException(
                f'{context} attribute "{attribute_name}" uses undefined object'
                f' "{object_type}"'
            )

        profile = merged.get("profile")
        requirement = merged.get("requirement") or OPTIONAL
        if profile:
            # Profiles are opt-in, so their attributes can never be required
            requirement = OPTIONAL

        return AttributeDefinition(
            name=attribute_name,
            ocsf_type=ocsf_type,
            object_type=object_type,
            is_array=merged.get("is_array") is True,
            requirement=requirement,
            caption=merged.get("caption", ""),
            description=strip_html(merged.get("description", "")),
            sibling=merged.get("sibling"),
            enum_values=parse_enum_values(merged.get("enum")),
            deprecated=_deprecation_message(merged.get("@deprecated")),
            profile=profile,
            overrides=frozenset(overrides),
        )

    def _extract_shared_enums(self) -> dict[str, SharedEnum]:
        enums = {}
        for attribute_name in sorted(self._dictionary_attributes):
            attribute = self._dictionary_attributes[attribute_name]
            if not attribute_name.endswith("_id"):
                continue
            values = parse_enum_values(attribute.get("enum"))
            if values:
                enums[attribute_name] = SharedEnum(
                    attribute_name=attribute_name,
                    caption=attribute.get("caption", ""),
                    values=values,
                )
        return enums


def parse_enum_values(enum: Any) -> Optional[tuple[EnumValue, ...]]:
    """Parse an OCSF "enum" map keyed by integer strings, sorted by value."""
    if not isinstance(enum, dict):
        return None
    values = []
    for key, detail in enum.items():
        try:
            value = int(key)
        except ValueError:
            continue
        if not isinstance(detail, dict):
            continue
        values.append(
            EnumValue(
                value=value,
                caption=detail.get("caption", str(value)),
                description=strip_html(detail.get("description", "")),
            )
        )
    values.sort(key=lambda v: v.value)
    return tuple(values) or None


def _json_object(value: Any, context: str) -> JObject:
    if not isinstance(value, dict):
        raise SchemaException(
            f"{context} must be an object but got {json_type_from_value(value)}"
        )
    return value


def _deprecation_message(deprecated: Any) -> Optional[str]:
    if not deprecated:
        return None
    if isinstance(deprecated, dict):
        message = strip_html(deprecated.get("message", "")) or "Deprecated."
        since = deprecated.get("since")
        if since:
            return f"{message} (since {since})"
        return message
    return "Deprecated."
