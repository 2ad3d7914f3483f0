import dataclasses
import logging
from types import MappingProxyType
from typing import Optional

from ocsf_model_compiler.exceptions import SchemaException
from ocsf_model_compiler.model import (
    EVENT,
    AttributeDefinition,
    EntityDefinition,
    EnumValue,
    ParsedSchema,
    ResolvedEntity,
    ResolvedSchema,
)
from ocsf_model_compiler.utils import category_scoped_class_uid

logger = logging.getLogger(__name__)

OTHER_CATEGORY = "other"

# Raw attribute detail key -> AttributeDefinition field
_OVERRIDABLE_DETAILS = {
    "requirement": "requirement",
    "caption": "caption",
    "description": "description",
    "@deprecated": "deprecated",
}


def merge_enum_values(
    parent: Optional[tuple[EnumValue, ...]], child: Optional[tuple[EnumValue, ...]]
) -> Optional[tuple[EnumValue, ...]]:
    """
    Union of two enum value lists ordered by value. The child's entry wins when both
    define the same value.
    """
    if parent is None:
        return child
    if child is None:
        return parent
    merged = {v.value: v for v in parent}
    merged.update((v.value, v) for v in child)
    return tuple(merged[value] for value in sorted(merged))


def merge_attribute(
    parent: AttributeDefinition, child: AttributeDefinition
) -> AttributeDefinition:
    """
    Merge an attribute redefined by a descendant. Details the descendant does not give
    explicitly are kept from the ancestor, since the descendant's values for them only
    come from the dictionary.
    """
    inherited = {
        field_name: getattr(parent, field_name)
        for key, field_name in _OVERRIDABLE_DETAILS.items()
        if key not in child.overrides
    }
    return dataclasses.replace(
        child,
        **inherited,
        enum_values=merge_enum_values(parent.enum_values, child.enum_values),
        sibling=child.sibling or parent.sibling,
        profile=child.profile or parent.profile,
        overrides=parent.overrides | child.overrides,
    )


class EntityResolver:
    """
    Flattens the "extends" inheritance of one kind of entity (objects or events).
    Results are memoized, so resolving the same name twice returns the same value.
    """

    def __init__(
        self,
        definitions: dict[str, EntityDefinition],
        categories: Optional[dict[str, int]] = None,
    ) -> None:
        self._definitions = definitions
        self._categories = categories or {}
        self._resolved: dict[str, ResolvedEntity] = {}

    def resolve(self, name: str) -> ResolvedEntity:
        if name in self._resolved:
            return self._resolved[name]

        chain = self._ancestry(name)
        attributes: dict[str, AttributeDefinition] = {}
        for definition in chain:
            for attribute_name, attribute in definition.attributes.items():
                if attribute_name in attributes:
                    attributes[attribute_name] = merge_attribute(
                        attributes[attribute_name], attribute
                    )
                else:
                    attributes[attribute_name] = attribute

        entity = chain[-1]
        if entity.closed is not None:
            closed = entity.closed
        else:
            closed = entity.kind == EVENT

        category = None
        category_uid = 0
        class_uid = 0
        if entity.kind == EVENT:
            category, category_uid, class_uid = self._event_uids(chain)

        resolved = ResolvedEntity(
            kind=entity.kind,
            name=entity.name,
            caption=entity.caption,
            description=entity.description,
            attributes=attributes,
            closed=closed,
            is_hidden=entity.is_hidden,
            extends=entity.extends,
            category=category,
            category_uid=category_uid,
            class_uid=class_uid,
        )
        logger.debug(
            'Resolved %s "%s" with %d attributes (inheritance depth %d)',
            entity.kind,
            name,
            len(attributes),
            len(chain) - 1,
        )
        self._resolved[name] = resolved
        return resolved

    def resolve_all(self) -> dict[str, ResolvedEntity]:
        return {name: self.resolve(name) for name in self._definitions}

    def _ancestry(self, name: str) -> list[EntityDefinition]:
        """Return the inheritance chain of an entity, root ancestor first."""
        chain: list[EntityDefinition] = []
        seen: list[str] = []
        current: Optional[str] = name
        while current is not None:
            if current in seen:
                path = " -> ".join([*seen, current])
                raise SchemaException(f'Cyclic "extends" chain: {path}')
            definition = self._definitions.get(current)
            if definition is None:
                if not chain:
                    raise SchemaException(f'Cannot resolve undefined entity "{name}"')
                child = chain[-1]
                raise SchemaException(
                    f'{child.kind} "{child.name}" extends undefined {child.kind}'
                    f' "{current}"'
                )
            seen.append(current)
            chain.append(definition)
            current = definition.extends
        chain.reverse()
        return chain

    def _event_uids(
        self, chain: list[EntityDefinition]
    ) -> tuple[Optional[str], int, int]:
        event = chain[-1]
        category = None
        for definition in reversed(chain):
            if definition.category:
                category = definition.category
                break

        if category is None:
            if event.is_hidden:
                return None, 0, 0
            raise SchemaException(f'Event class "{event.name}" has no category')

        if category == OTHER_CATEGORY:
            category_uid = 0
        elif category in self._categories:
            category_uid = self._categories[category]
        else:
            raise SchemaException(
                f'Event class "{event.name}" uses undefined category "{category}"'
            )

        if event.uid is None:
            class_uid = 0
        else:
            class_uid = category_scoped_class_uid(category_uid, event.uid)
        return category, category_uid, class_uid


def resolve_entity(
    name: str,
    definitions: dict[str, EntityDefinition],
    categories: Optional[dict[str, int]] = None,
) -> ResolvedEntity:
    return EntityResolver(definitions, categories).resolve(name)


def resolve_schema(parsed: ParsedSchema) -> ResolvedSchema:
    objects = EntityResolver(parsed.objects).resolve_all()
    events = EntityResolver(parsed.events, parsed.categories).resolve_all()
    logger.info(
        "Resolved inheritance of %d objects and %d event classes",
        len(objects),
        len(events),
    )
    return ResolvedSchema(
        version=parsed.version,
        objects=MappingProxyType(objects),
        events=MappingProxyType(events),
        enums=MappingProxyType(dict(parsed.enums)),
    )
