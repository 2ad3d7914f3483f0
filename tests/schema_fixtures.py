import importlib
import shutil
import sys
import uuid
from pathlib import Path

from ocsf_model_compiler.cycles import annotate_cycles, build_reference_graph
from ocsf_model_compiler.emitter import emit_latest, emit_version
from ocsf_model_compiler.model import ResolvedSchema
from ocsf_model_compiler.reader import SchemaReader
from ocsf_model_compiler.resolver import resolve_schema

BASE_DIR = Path(__file__).parent
MINI_SCHEMA_PATH = BASE_DIR / "uncompiled-schemas/ocsf-schema-mini"


def resolve_mini_schema(schema_path: Path = MINI_SCHEMA_PATH) -> ResolvedSchema:
    return resolve_schema(SchemaReader(schema_path).read())


def copy_mini_schema(dest: Path) -> Path:
    shutil.copytree(MINI_SCHEMA_PATH, dest)
    return dest


class GeneratedPackage:
    """
    The mini schema emitted into a uniquely named, importable package under a
    temporary directory.
    """

    def __init__(self, temp_dir: Path) -> None:
        self.name = f"generated_{uuid.uuid4().hex}"
        self.temp_dir = temp_dir
        self.root = temp_dir / self.name

    def emit(self) -> "GeneratedPackage":
        self.root.mkdir()
        (self.root / "__init__.py").write_text("", encoding="utf-8")
        schema = resolve_mini_schema()
        annotation = annotate_cycles(build_reference_graph(schema.objects))
        emit_version(schema, annotation, self.root)
        emit_latest(self.root, schema.version)
        sys.path.insert(0, str(self.temp_dir))
        return self

    def module(self, relative_name: str):
        return importlib.import_module(f"{self.name}.{relative_name}")

    def unload(self) -> None:
        sys.path.remove(str(self.temp_dir))
        for name in list(sys.modules):
            if name == self.name or name.startswith(f"{self.name}."):
                del sys.modules[name]
