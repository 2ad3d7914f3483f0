"""
Emits the Python package of one OCSF schema version.

Layout under the output root:

    <slug>/__init__.py          version barrel
    <slug>/objects/<module>.py  one pydantic model (and TypedDict) per object
    <slug>/events/<module>.py   one pydantic model (and TypedDict) per event class
    <slug>/enums/<module>.py    one IntEnum (and label mapping) per enum

A version is emitted to a staging directory that replaces the version directory only
when everything was written, so a version directory is always complete.
"""

import heapq
import json
import logging
import shutil
import tempfile
import textwrap
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ocsf_model_compiler.cycles import build_reference_graph, find_cycles
from ocsf_model_compiler.exceptions import EmitException
from ocsf_model_compiler.model import (
    EVENT,
    OBJECT,
    AttributeDefinition,
    CycleAnnotation,
    EnumValue,
    ResolvedEntity,
    ResolvedSchema,
)
from ocsf_model_compiler.naming import (
    to_constant_name,
    to_enum_member,
    to_field_name,
    to_file_name,
    to_module_name,
    to_version_slug,
)
from ocsf_model_compiler.type_map import map_type

logger = logging.getLogger(__name__)

OBJECTS_PACKAGE = "objects"
EVENTS_PACKAGE = "events"
ENUMS_PACKAGE = "enums"

SCHEMA_URL = "https://schema.ocsf.io"

UNKNOWN_ID = 0
OTHER_ID = 99

_DOC_WIDTH = 84

# Names imported or defined by generated entity modules, which referenced entities must
# not shadow
_MODULE_NAMES = frozenset(
    [
        "Any",
        "ConfigDict",
        "DEFERRED_REFS",
        "Field",
        "JsonValue",
        "Literal",
        "OcsfEvent",
        "OcsfObject",
        "Optional",
        "Required",
        "SIBLING_PAIRS",
        "SiblingPair",
        "StrictBool",
        "StrictFloat",
        "StrictInt",
        "StrictStr",
        "TYPE_CHECKING",
        "TypedDict",
        "UID_CONFIG",
        "UidConfig",
        "annotations",
    ]
)

_PYDANTIC_TYPES = frozenset(
    ["JsonValue", "StrictBool", "StrictFloat", "StrictInt", "StrictStr"]
)


@dataclass(frozen=True)
class EnumDefinition:
    type_name: str
    caption: str
    values: tuple[EnumValue, ...]

    @property
    def module_name(self) -> str:
        return to_module_name(self.type_name)

    @property
    def labels_name(self) -> str:
        return f"{to_constant_name(to_file_name(self.type_name))}_LABELS"


@dataclass
class VersionPlan:
    """Everything that goes into one version package, validated before writing."""

    schema: ResolvedSchema
    annotation: CycleAnnotation
    objects: dict[str, ResolvedEntity] = field(default_factory=dict)
    events: dict[str, ResolvedEntity] = field(default_factory=dict)
    enums: dict[str, EnumDefinition] = field(default_factory=dict)
    # Emitted objects, each after the objects it imports eagerly
    object_order: list[str] = field(default_factory=list)

    @property
    def slug(self) -> str:
        return self.schema.slug


def activity_enum(event: ResolvedEntity) -> Optional[EnumDefinition]:
    """
    Return the event specific activity enum of an event class, or None when the class
    does not define activities beyond Unknown and Other.
    """
    attribute = event.attributes.get("activity_id")
    if attribute is None or not attribute.enum_values:
        return None
    values = {v.value: v for v in attribute.enum_values}
    if not set(values) - {UNKNOWN_ID, OTHER_ID}:
        return None
    values.setdefault(UNKNOWN_ID, EnumValue(UNKNOWN_ID, "Unknown"))
    values.setdefault(OTHER_ID, EnumValue(OTHER_ID, "Other"))
    return EnumDefinition(
        type_name=f"{event.type_name}ActivityId",
        caption=f"{event.caption or event.type_name} Activity ID",
        values=tuple(values[value] for value in sorted(values)),
    )


def plan_version(schema: ResolvedSchema, annotation: CycleAnnotation) -> VersionPlan:
    plan = VersionPlan(schema, annotation)

    for name in sorted(schema.events):
        event = schema.events[name]
        if not event.is_hidden:
            plan.events[name] = event

    # Public objects plus the abstract objects that something emitted references
    pending = [
        name for name in sorted(schema.objects) if not schema.objects[name].is_hidden
    ]
    for event in plan.events.values():
        pending.extend(event.references)
    while pending:
        name = pending.pop()
        if name in plan.objects:
            continue
        if name not in schema.objects:
            raise EmitException(f'Reference to undefined object "{name}"')
        obj = schema.objects[name]
        plan.objects[name] = obj
        pending.extend(obj.references)
    plan.objects = {name: plan.objects[name] for name in sorted(plan.objects)}

    for name in sorted(schema.enums):
        shared = schema.enums[name]
        _add_enum(
            plan, EnumDefinition(shared.type_name, shared.caption, shared.values)
        )
    for event in plan.events.values():
        enum = activity_enum(event)
        if enum is not None:
            _add_enum(plan, enum)
    plan.enums = {name: plan.enums[name] for name in sorted(plan.enums)}

    _check_names(OBJECTS_PACKAGE, plan.objects.values())
    _check_names(EVENTS_PACKAGE, plan.events.values())
    plan.object_order = _eager_object_order(plan)
    return plan


def _add_enum(plan: VersionPlan, enum: EnumDefinition) -> None:
    module_name = enum.module_name
    if module_name in plan.enums:
        raise EmitException(
            f'Enums "{plan.enums[module_name].type_name}" and "{enum.type_name}" would'
            f' both be emitted as module "{ENUMS_PACKAGE}.{module_name}"'
        )
    plan.enums[module_name] = enum


def _check_names(package: str, entities: Iterable[ResolvedEntity]) -> None:
    modules: dict[str, str] = {}
    exported: dict[str, str] = {}
    for entity in entities:
        module_name = to_module_name(entity.type_name)
        if module_name in modules:
            raise EmitException(
                f'{entity.kind} "{modules[module_name]}" and "{entity.name}" would both'
                f' be emitted as module "{package}.{module_name}"'
            )
        modules[module_name] = entity.name
        for type_name in (entity.type_name, f"{entity.type_name}Dict"):
            if type_name in _MODULE_NAMES:
                raise EmitException(
                    f'{entity.kind} "{entity.name}" type name "{type_name}" clashes'
                    " with a name used by generated modules"
                )
            if type_name in exported:
                raise EmitException(
                    f'{entity.kind} "{exported[type_name]}" and "{entity.name}" would'
                    f' both be exported as "{package}.{type_name}"'
                )
            exported[type_name] = entity.name


def _eager_object_order(plan: VersionPlan) -> list[str]:
    """Topological order of the eagerly bound object graph, smallest name first."""
    graph = build_reference_graph(plan.objects)
    remaining = find_cycles(graph, plan.annotation.deferred)
    if remaining:
        raise EmitException(
            "Circular references left after deferring references: "
            + "; ".join(", ".join(component) for component in remaining)
        )

    dependencies: dict[str, set[str]] = {}
    dependents: dict[str, set[str]] = {name: set() for name in graph}
    for source, edges in graph.items():
        dependencies[source] = {
            target
            for target in edges
            if target != source and not plan.annotation.is_deferred(source, target)
        }
        for target in dependencies[source]:
            dependents[target].add(source)

    ready = [name for name, deps in dependencies.items() if not deps]
    heapq.heapify(ready)
    order = []
    while ready:
        name = heapq.heappop(ready)
        order.append(name)
        for dependent in sorted(dependents[name]):
            dependencies[dependent].discard(name)
            if not dependencies[dependent]:
                heapq.heappush(ready, dependent)
    assert len(order) == len(graph), "LOGIC BUG: eager object graph is not acyclic"
    return order


def _py_str(text: str) -> str:
    # A JSON string is also a valid Python string literal
    return json.dumps(text)


def _docstring(text: str, indent: str = "") -> list[str]:
    text = text.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
    paragraphs = [p for p in text.split("\n\n") if p.strip()]
    lines = [f'{indent}"""']
    for i, paragraph in enumerate(paragraphs):
        if i:
            lines.append("")
        lines.extend(
            textwrap.wrap(
                paragraph,
                width=_DOC_WIDTH,
                initial_indent=indent,
                subsequent_indent=indent,
                break_on_hyphens=False,
            )
        )
    lines.append(f'{indent}"""')
    return lines


class EntityModuleRenderer:
    """Renders the module of one object or event class."""

    def __init__(self, plan: VersionPlan, entity: ResolvedEntity) -> None:
        self.plan = plan
        self.entity = entity
        self.version = plan.schema.version
        self.type_name = entity.type_name
        self.dict_name = f"{entity.type_name}Dict"

        self._typing: set[str] = set()
        self._pydantic: set[str] = {"ConfigDict", "Field"}
        self._runtime: dict[str, set[str]] = {}
        # module -> [(name, local name)]
        self._eager: dict[str, list[tuple[str, str]]] = {}
        self._deferred: dict[str, list[tuple[str, str]]] = {}
        # object name -> (model expression, static expression)
        self._references: dict[str, tuple[str, str]] = {}

    def render(self) -> str:
        fields = []
        entries = []
        for attribute in self.entity.attributes.values():
            field_line, entry = self._field(attribute)
            fields.append(field_line)
            entries.append(entry)

        is_event = self.entity.kind == EVENT
        base = "OcsfEvent" if is_event else "OcsfObject"
        self._runtime.setdefault("ocsf_models.base", set()).add(base)
        pairs = self._sibling_pairs() if is_event else []
        if is_event:
            self._runtime.setdefault("ocsf_models.uid", set()).add("UidConfig")
            if pairs:
                self._runtime.setdefault("ocsf_models.sibling", set()).add(
                    "SiblingPair"
                )
        self._typing.add("TypedDict")

        lines = [
            "# Generated by ocsf-model-compiler. Do not edit.",
            *self._module_docstring(),
            "",
            "from __future__ import annotations",
            "",
            *self._imports(),
        ]

        for attribute in pairs:
            lines.append("")
            lines.append(f"{to_constant_name(attribute.name)}_LABELS = {{")
            for value in attribute.enum_values:
                lines.append(f"    {value.value}: {_py_str(value.caption)},")
            lines.append("}")

        lines.append("")
        lines.append("")
        lines.append(f"class {self.type_name}({base}):")
        lines.extend(self._class_docstring())
        lines.append("")
        extra = "forbid" if self.entity.closed else "allow"
        lines.append(f'    model_config = ConfigDict(extra="{extra}")')
        if is_event:
            lines.append("")
            lines.append(
                f"    UID_CONFIG = UidConfig(category_uid={self.entity.category_uid},"
                f" class_uid={self.entity.class_uid})"
            )
            if pairs:
                lines.append("    SIBLING_PAIRS = (")
                for attribute in pairs:
                    lines.append(
                        f"        SiblingPair({_py_str(attribute.name)},"
                        f" {_py_str(attribute.sibling)},"
                        f" {to_constant_name(attribute.name)}_LABELS),"
                    )
                lines.append("    )")
        if fields:
            lines.append("")
            lines.extend(fields)

        lines.append("")
        lines.append("")
        lines.append(f"{self.dict_name} = TypedDict(")
        lines.append(f"    {_py_str(self.dict_name)},")
        lines.append("    {")
        lines.extend(entries)
        lines.append("    },")
        lines.append("    total=False,")
        lines.append(")")
        lines.append("")
        return "\n".join(lines)

    def _module_docstring(self) -> list[str]:
        kind = "event class" if self.entity.kind == EVENT else "object"
        collection = "classes" if self.entity.kind == EVENT else "objects"
        caption = self.entity.caption or self.entity.name
        text = (
            f"OCSF {self.version} {kind}: {caption}."
            f"\n\n{SCHEMA_URL}/{self.version}/{collection}/{self.entity.name}"
        )
        return _docstring(text)

    def _class_docstring(self) -> list[str]:
        parts = [self.entity.description or self.entity.caption or self.entity.name]
        if self.entity.kind == EVENT:
            parts.append(
                f"Category UID: {self.entity.category_uid}. Class UID:"
                f" {self.entity.class_uid}."
            )
        return _docstring("\n\n".join(parts), indent="    ")

    def _sibling_pairs(self) -> list[AttributeDefinition]:
        return [
            attribute
            for attribute in self.entity.attributes.values()
            if attribute.is_enum
            and attribute.sibling
            and attribute.sibling in self.entity.attributes
        ]

    def _local_name(self, name: str) -> str:
        if name in _MODULE_NAMES or name in (self.type_name, self.dict_name):
            return f"{name}_"
        return name

    def _reference(self, object_name: str) -> tuple[str, str]:
        if object_name in self._references:
            return self._references[object_name]

        target = self.plan.objects[object_name]
        if self.entity.kind == OBJECT and object_name == self.entity.name:
            # Self reference; the TypedDict is not defined yet where it is used
            result = (self.type_name, _py_str(self.dict_name))
        else:
            module_name = to_module_name(target.type_name)
            model_name = self._local_name(target.type_name)
            dict_name = self._local_name(f"{target.type_name}Dict")
            names = [
                (target.type_name, model_name),
                (f"{target.type_name}Dict", dict_name),
            ]
            if self.entity.kind == EVENT:
                module = f"..{OBJECTS_PACKAGE}.{module_name}"
                self._eager.setdefault(module, []).extend(names)
                result = (model_name, dict_name)
            elif self.plan.annotation.is_deferred(self.entity.name, object_name):
                self._deferred.setdefault(module_name, []).extend(names)
                result = (model_name, _py_str(dict_name))
            else:
                self._eager.setdefault(f".{module_name}", []).extend(names)
                result = (model_name, dict_name)
        self._references[object_name] = result
        return result

    def _scalar(self, ocsf_type: str) -> tuple[str, str]:
        mapping = map_type(ocsf_type)
        if mapping.validator in _PYDANTIC_TYPES:
            self._pydantic.add(mapping.validator)
        elif mapping.validator == "Any":
            self._typing.add("Any")
        if mapping.static == "Any":
            self._typing.add("Any")
        return mapping.validator, mapping.static

    def _field(self, attribute: AttributeDefinition) -> tuple[str, str]:
        if attribute.is_reference:
            model_type, static_type = self._reference(attribute.object_type)
        elif attribute.is_enum:
            self._typing.add("Literal")
            values = ", ".join(str(v.value) for v in attribute.enum_values)
            model_type, static_type = f"Literal[{values}]", "int"
        else:
            model_type, static_type = self._scalar(attribute.ocsf_type)

        if attribute.is_array:
            model_type = f"list[{model_type}]"
            static_type = f"list[{static_type}]"

        field_name = to_field_name(attribute.name)
        args = []
        if attribute.is_required:
            self._typing.add("Required")
            static_type = f"Required[{static_type}]"
        else:
            self._typing.add("Optional")
            model_type = f"Optional[{model_type}]"
            args.append("default=None")
        if field_name != attribute.name:
            args.append(f"alias={_py_str(attribute.name)}")
        if attribute.description:
            args.append(f"description={_py_str(attribute.description)}")
        if attribute.deprecated:
            args.append(f"deprecated={_py_str(attribute.deprecated)}")

        field_line = f"    {field_name}: {model_type} = Field({', '.join(args)})"
        entry = f"        {_py_str(attribute.name)}: {static_type},"
        return field_line, entry

    def _imports(self) -> list[str]:
        lines = []
        if self._deferred:
            self._typing.add("TYPE_CHECKING")
        lines.append(f"from typing import {', '.join(sorted(self._typing))}")
        lines.append("")
        lines.append(f"from pydantic import {', '.join(sorted(self._pydantic))}")
        lines.append("")
        for module in sorted(self._runtime):
            names = ", ".join(sorted(self._runtime[module]))
            lines.append(f"from {module} import {names}")

        if self._eager:
            lines.append("")
            for module in sorted(self._eager):
                names = _import_list(self._eager[module])
                lines.append(f"from {module} import {names}")

        if self._deferred:
            lines.append("")
            lines.append("if TYPE_CHECKING:")
            for module in sorted(self._deferred):
                lines.append(
                    f"    from .{module} import {_import_list(self._deferred[module])}"
                )
            lines.append("")
            lines.append(
                "# Bound on first validation by ocsf_models.base.bind_deferred_refs"
            )
            lines.append("DEFERRED_REFS = {")
            for module in sorted(self._deferred):
                for name, local in self._deferred[module]:
                    lines.append(
                        f"    {_py_str(local)}: ({_py_str(module)}, {_py_str(name)}),"
                    )
            lines.append("}")
        return lines


def _import_list(names: list[tuple[str, str]]) -> str:
    return ", ".join(
        name if name == local else f"{name} as {local}" for name, local in names
    )


def render_enum_module(enum: EnumDefinition, version: str) -> str:
    lines = [
        "# Generated by ocsf-model-compiler. Do not edit.",
        *_docstring(f"OCSF {version} enum: {enum.caption or enum.type_name}."),
        "",
        "from enum import IntEnum",
        "",
        "",
        f"class {enum.type_name}(IntEnum):",
        *_docstring(f"{enum.caption or enum.type_name} values.", indent="    "),
        "",
    ]
    members: set[str] = set()
    for value in enum.values:
        member = to_enum_member(value.caption)
        if member in members:
            member = f"{member}_{value.value}"
        members.add(member)
        lines.append(f"    {member} = {value.value}")
        if value.description:
            lines.extend(_docstring(value.description, indent="    "))

    lines.append("")
    lines.append("")
    lines.append(f"{enum.labels_name}: dict[int, str] = {{")
    for value in enum.values:
        lines.append(f"    {value.value}: {_py_str(value.caption)},")
    lines.append("}")
    lines.append("")
    return "\n".join(lines)


def _render_barrel(
    description: str, imports: list[tuple[str, list[str]]]
) -> str:
    lines = [
        "# Generated by ocsf-model-compiler. Do not edit.",
        *_docstring(description),
        "",
    ]
    exported = []
    for module_name, names in imports:
        lines.append(f"from .{module_name} import {', '.join(names)}")
        exported.extend(names)
    lines.append("")
    lines.append("__all__ = [")
    for name in sorted(exported):
        lines.append(f"    {_py_str(name)},")
    lines.append("]")
    lines.append("")
    return "\n".join(lines)


def render_version(plan: VersionPlan) -> dict[str, str]:
    """Render every file of a version package, keyed by path relative to the package."""
    version = plan.schema.version
    files: dict[str, str] = {}

    objects_barrel = []
    for name in plan.object_order:
        obj = plan.objects[name]
        module_name = to_module_name(obj.type_name)
        files[f"{OBJECTS_PACKAGE}/{module_name}.py"] = EntityModuleRenderer(
            plan, obj
        ).render()
        if not obj.is_hidden:
            objects_barrel.append(
                (module_name, [obj.type_name, f"{obj.type_name}Dict"])
            )
    files[f"{OBJECTS_PACKAGE}/__init__.py"] = _render_barrel(
        f"OCSF {version} objects.", objects_barrel
    )

    events_barrel = []
    for event in plan.events.values():
        module_name = to_module_name(event.type_name)
        files[f"{EVENTS_PACKAGE}/{module_name}.py"] = EntityModuleRenderer(
            plan, event
        ).render()
        events_barrel.append(
            (module_name, [event.type_name, f"{event.type_name}Dict"])
        )
    files[f"{EVENTS_PACKAGE}/__init__.py"] = _render_barrel(
        f"OCSF {version} event classes.", events_barrel
    )

    enums_barrel = []
    for module_name, enum in plan.enums.items():
        files[f"{ENUMS_PACKAGE}/{module_name}.py"] = render_enum_module(enum, version)
        enums_barrel.append((module_name, [enum.type_name, enum.labels_name]))
    files[f"{ENUMS_PACKAGE}/__init__.py"] = _render_barrel(
        f"OCSF {version} enums.", enums_barrel
    )

    files["__init__.py"] = "\n".join(
        [
            "# Generated by ocsf-model-compiler. Do not edit.",
            *_docstring(
                f"OCSF {version} models.\n\nObjects and event classes can share a"
                " name, so import them from their namespace, for example:"
                f" from .{EVENTS_PACKAGE} import FileActivity"
            ),
            "",
            f"from . import {ENUMS_PACKAGE}, {EVENTS_PACKAGE}, {OBJECTS_PACKAGE}",
            "",
            f"OCSF_VERSION = {_py_str(version)}",
            "",
            "__all__ = [",
            '    "OCSF_VERSION",',
            f"    {_py_str(ENUMS_PACKAGE)},",
            f"    {_py_str(EVENTS_PACKAGE)},",
            f"    {_py_str(OBJECTS_PACKAGE)},",
            "]",
            "",
        ]
    )
    return files


def _write_files(root: Path, files: Mapping[str, str]) -> None:
    for relative_path in sorted(files):
        path = root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(files[relative_path], encoding="utf-8", newline="\n")


def _replace_dir(staging_path: Path, target_path: Path) -> None:
    if target_path.exists():
        old_path = Path(
            tempfile.mkdtemp(dir=target_path.parent, prefix=f".{target_path.name}-old-")
        )
        old_path.rmdir()
        target_path.rename(old_path)
        staging_path.rename(target_path)
        shutil.rmtree(old_path)
    else:
        staging_path.rename(target_path)


def emit_version(
    schema: ResolvedSchema, annotation: CycleAnnotation, output_root: Path
) -> Path:
    """
    Emit the package of one version under output_root and return its path. Nothing is
    written unless the whole version can be emitted.
    """
    plan = plan_version(schema, annotation)
    files = render_version(plan)

    output_root.mkdir(parents=True, exist_ok=True)
    target_path = output_root / plan.slug
    staging_path = Path(
        tempfile.mkdtemp(dir=output_root, prefix=f".{plan.slug}-staging-")
    )
    try:
        _write_files(staging_path, files)
        _replace_dir(staging_path, target_path)
    except BaseException:
        shutil.rmtree(staging_path, ignore_errors=True)
        raise

    logger.info(
        "Emitted %d objects, %d event classes, and %d enums to %s",
        len(plan.objects),
        len(plan.events),
        len(plan.enums),
        target_path,
    )
    return target_path


def emit_latest(output_root: Path, version: str) -> Path:
    """Write the module aliasing the newest version, and the root package if missing."""
    slug = to_version_slug(version)
    init_path = output_root / "__init__.py"
    if not init_path.exists():
        init_path.write_text(
            '"""Generated OCSF models."""\n', encoding="utf-8", newline="\n"
        )

    latest_path = output_root / "latest.py"
    lines = [
        "# Generated by ocsf-model-compiler. Do not edit.",
        *_docstring(f"Alias of the newest supported OCSF version, {version}."),
        "",
        f"from .{slug} import OCSF_VERSION, enums, events, objects",
        "",
        "__all__ = [",
        '    "OCSF_VERSION",',
        '    "enums",',
        '    "events",',
        '    "objects",',
        "]",
        "",
    ]
    latest_path.write_text("\n".join(lines), encoding="utf-8", newline="\n")
    logger.info("Emitted %s aliasing %s", latest_path, slug)
    return latest_path
