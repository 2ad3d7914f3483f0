from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, TypeAlias

from ocsf_model_compiler.naming import to_type_name, to_version_slug

EntityKind: TypeAlias = str  # "object" or "event"

OBJECT = "object"
EVENT = "event"

# Attribute requirement values
REQUIRED = "required"
RECOMMENDED = "recommended"
OPTIONAL = "optional"

# Edge ranks, lower is a better candidate for deferred binding
RANK_ARRAY = 0
RANK_OPTIONAL = 1
RANK_REQUIRED = 2


@dataclass(frozen=True)
class SchemaVersion:
    version: str
    path: Path

    @property
    def slug(self) -> str:
        return to_version_slug(self.version)


@dataclass(frozen=True)
class EnumValue:
    value: int
    caption: str
    description: str = ""


@dataclass(frozen=True)
class AttributeDefinition:
    name: str
    ocsf_type: str
    object_type: Optional[str] = None
    is_array: bool = False
    requirement: str = OPTIONAL
    caption: str = ""
    description: str = ""
    sibling: Optional[str] = None
    enum_values: Optional[tuple[EnumValue, ...]] = None
    deprecated: Optional[str] = None
    profile: Optional[str] = None
    # Keys given explicitly by the entity, rather than taken from the dictionary
    overrides: frozenset[str] = frozenset()

    @property
    def is_required(self) -> bool:
        return self.requirement == REQUIRED

    @property
    def is_reference(self) -> bool:
        return self.object_type is not None

    @property
    def is_enum(self) -> bool:
        return bool(self.enum_values) and self.name.endswith("_id")


@dataclass
class EntityDefinition:
    kind: EntityKind
    name: str
    extends: Optional[str] = None
    caption: str = ""
    description: str = ""
    attributes: dict[str, AttributeDefinition] = field(default_factory=dict)
    # None means the kind default applies
    closed: Optional[bool] = None
    category: Optional[str] = None
    uid: Optional[int] = None
    is_hidden: bool = False

    @property
    def type_name(self) -> str:
        return to_type_name(self.name)


@dataclass(frozen=True)
class ResolvedEntity:
    kind: EntityKind
    name: str
    caption: str
    description: str
    attributes: Mapping[str, AttributeDefinition]
    closed: bool
    is_hidden: bool
    extends: Optional[str] = None
    category: Optional[str] = None
    category_uid: int = 0
    class_uid: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.attributes, MappingProxyType):
            object.__setattr__(
                self, "attributes", MappingProxyType(dict(self.attributes))
            )

    @property
    def type_name(self) -> str:
        return to_type_name(self.name)

    @property
    def references(self) -> list[str]:
        """Referenced object names, in attribute order, without duplicates."""
        refs = {}
        for attribute in self.attributes.values():
            if attribute.object_type:
                refs[attribute.object_type] = None
        return list(refs)


@dataclass(frozen=True)
class ReferenceEdge:
    source: str
    target: str
    attributes: tuple[AttributeDefinition, ...]

    @property
    def rank(self) -> int:
        if any(a.is_array for a in self.attributes):
            return RANK_ARRAY
        if any(not a.is_required for a in self.attributes):
            return RANK_OPTIONAL
        return RANK_REQUIRED

    @property
    def is_deferrable(self) -> bool:
        return self.rank < RANK_REQUIRED


ReferenceGraph: TypeAlias = dict[str, dict[str, ReferenceEdge]]


@dataclass(frozen=True)
class CycleAnnotation:
    # (source, target) object name pairs that must be bound lazily
    deferred: frozenset[tuple[str, str]] = frozenset()
    # Non-trivial strongly connected components, each sorted
    components: tuple[tuple[str, ...], ...] = ()

    def is_deferred(self, source: str, target: str) -> bool:
        return (source, target) in self.deferred


@dataclass(frozen=True)
class SharedEnum:
    attribute_name: str
    caption: str
    values: tuple[EnumValue, ...]

    @property
    def type_name(self) -> str:
        return to_type_name(self.attribute_name)


@dataclass
class ParsedSchema:
    version: str
    categories: dict[str, int]
    objects: dict[str, EntityDefinition]
    events: dict[str, EntityDefinition]
    enums: dict[str, SharedEnum]


@dataclass(frozen=True)
class ResolvedSchema:
    version: str
    objects: Mapping[str, ResolvedEntity]
    events: Mapping[str, ResolvedEntity]
    enums: Mapping[str, SharedEnum]

    @property
    def slug(self) -> str:
        return to_version_slug(self.version)


@dataclass(frozen=True)
class VersionFailure:
    version: str
    error: str
