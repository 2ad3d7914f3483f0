import json
from dataclasses import dataclass
from pathlib import Path
from typing import TypeAlias

from ocsf_model_compiler.jsonish import JObject, JValue


class Missing:
    pass


MISSING = Missing()


@dataclass
class DiffDictKeys:
    keys: list[str]


DiffValue: TypeAlias = "Missing | DiffDictKeys | JValue"


@dataclass
class Difference:
    path: list[str]
    value1: DiffValue
    value2: DiffValue

    def formatted_string(self) -> str:
        return (
            f'Diff at "{"/".join(self.path)}":'
            f"\n    left value  : {_diff_value_to_string(self.value1)}"
            f"\n    right value : {_diff_value_to_string(self.value2)}"
        )


def formatted_diffs(diffs: list[Difference]) -> str:
    return "\n".join(diff.formatted_string() for diff in diffs)


def diff_objects(obj1: JObject, obj2: JObject) -> tuple[bool, list[Difference]]:
    diffs = []
    _diff_objects(obj1, obj2, [], diffs)
    return not diffs, diffs


def _diff_objects(
    obj1: JObject, obj2: JObject, base_path: list[str], diffs: list[Difference]
) -> None:
    for key in sorted(set(obj1.keys()) | set(obj2.keys())):
        path = [*base_path, key]
        v1 = obj1.get(key, MISSING)
        v2 = obj2.get(key, MISSING)
        if isinstance(v1, dict) and isinstance(v2, dict):
            if v1.keys() != v2.keys():
                diffs.append(
                    Difference(
                        path,
                        DiffDictKeys(sorted(v1.keys() - v2.keys())),
                        DiffDictKeys(sorted(v2.keys() - v1.keys())),
                    )
                )
            _diff_objects(v1, v2, path, diffs)
        elif v1 != v2:
            diffs.append(Difference(path, v1, v2))


def _diff_value_to_string(dv: DiffValue) -> str:
    if isinstance(dv, Missing):
        return "missing"
    if isinstance(dv, DiffDictKeys):
        if dv.keys:
            return f"key(s) not in other tree: {', '.join(dv.keys)}"
        return "key(s) not in other tree: none"
    if isinstance(dv, str) and "\n" in dv:
        # Generated file contents; show the first line only
        return json.dumps(dv.split("\n", 1)[0] + " ...")
    return json.dumps(dv, sort_keys=True)


def tree_to_object(path: Path) -> JObject:
    """
    Convert a directory tree to a JSON object so generated trees can be compared with
    diff_objects. Directories become objects and files become their text, and
    __pycache__ directories are ignored.
    """
    obj = {}
    for child in sorted(path.iterdir()):
        if child.is_dir():
            if child.name != "__pycache__":
                obj[child.name] = tree_to_object(child)
        else:
            obj[child.name] = child.read_text(encoding="utf-8")
    return obj
