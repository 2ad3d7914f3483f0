import logging
import subprocess
from collections.abc import Iterable
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from time import perf_counter

from ocsf_model_compiler.cycles import annotate_cycles, build_reference_graph
from ocsf_model_compiler.emitter import emit_latest, emit_version
from ocsf_model_compiler.exceptions import RetrievalException, SchemaException
from ocsf_model_compiler.model import SchemaVersion, VersionFailure
from ocsf_model_compiler.reader import SchemaReader
from ocsf_model_compiler.resolver import resolve_schema
from ocsf_model_compiler.source import Runner, fetch_version, local_version

logger = logging.getLogger(__name__)

SUPPORTED_VERSIONS = ("1.5.0", "1.6.0", "1.7.0")
LATEST_VERSION = "1.7.0"

DEFAULT_SCHEMAS_DIR = Path("schemas")
DEFAULT_OUTPUT_DIR = Path("src/ocsf_models")

# Per-version failures that do not stop other versions from being generated.
# Anything else (like an AssertionError for a logic bug) propagates.
VERSION_ERRORS = (SchemaException, OSError, TypeError, ValueError)


class VersionCompiler:
    """Compiles the raw schema tree of one version into its Python package."""

    def __init__(self, schema_version: SchemaVersion, output_root: Path) -> None:
        self.schema_version: SchemaVersion = schema_version
        self.output_root: Path = output_root

        self._is_compiled: bool = False
        self._warning_count: int = 0

    def compile(self) -> Path:
        if self._is_compiled:
            raise SchemaException(
                "Schema already compiled (compile can only be run once)"
            )
        self._is_compiled = True

        version = self.schema_version.version
        logger.info("Compiling schema %s", version)

        reader = SchemaReader(self.schema_version.path)
        parsed = reader.read()
        self._warning_count += reader.warning_count
        if parsed.version != version:
            self._warning(
                "Schema at %s declares version %s, but is compiled as %s",
                self.schema_version.path,
                parsed.version,
                version,
            )
            parsed.version = version

        resolved = resolve_schema(parsed)
        annotation = annotate_cycles(build_reference_graph(resolved.objects))
        package_path = emit_version(resolved, annotation, self.output_root)

        if self._warning_count:
            logger.warning(
                "Compile of %s completed with %d warnings(s)",
                version,
                self._warning_count,
            )
        else:
            logger.info("Compile of %s completed successfully", version)
        return package_path

    @property
    def warning_count(self) -> int:
        return self._warning_count

    def _warning(self, message: str, *args, **kwargs) -> None:
        self._warning_count += 1
        logger.warning(message, *args, **kwargs)


def compile_version(schema_version: SchemaVersion, output_root: Path) -> Path:
    start_seconds = perf_counter()
    package_path = VersionCompiler(schema_version, output_root).compile()
    logger.info(
        "Schema %s compilation took %.3f seconds",
        schema_version.version,
        perf_counter() - start_seconds,
    )
    return package_path


def _compile_all(
    sources: list[SchemaVersion], output_root: Path, jobs: int
) -> list[VersionFailure]:
    failures = []
    if jobs > 1 and len(sources) > 1:
        with ProcessPoolExecutor(max_workers=min(jobs, len(sources))) as executor:
            futures = [
                (source, executor.submit(compile_version, source, output_root))
                for source in sources
            ]
            for source, future in futures:
                try:
                    future.result()
                except VERSION_ERRORS as e:
                    logger.error("Schema %s failed: %s", source.version, e)
                    failures.append(VersionFailure(source.version, str(e)))
    else:
        for source in sources:
            try:
                compile_version(source, output_root)
            except VERSION_ERRORS as e:
                logger.error("Schema %s failed: %s", source.version, e)
                failures.append(VersionFailure(source.version, str(e)))
    return failures


def generate(
    versions: Iterable[str] = SUPPORTED_VERSIONS,
    schemas_dir: Path = DEFAULT_SCHEMAS_DIR,
    output_root: Path = DEFAULT_OUTPUT_DIR,
    latest: str = LATEST_VERSION,
    jobs: int = 1,
    download: bool = True,
    runner: Runner = subprocess.run,
) -> list[VersionFailure]:
    """
    Generate the packages of the given versions and the latest alias. Each version
    succeeds or fails on its own; the failures are returned in version order.
    """
    versions = list(versions)
    failures = []
    sources = []
    for version in versions:
        try:
            if download:
                sources.append(fetch_version(version, schemas_dir, runner=runner))
            else:
                sources.append(local_version(version, schemas_dir))
        except RetrievalException as e:
            logger.error("%s", e)
            failures.append(VersionFailure(version, str(e)))

    failures.extend(_compile_all(sources, output_root, jobs))
    failures.sort(key=lambda f: versions.index(f.version))

    failed_versions = {f.version for f in failures}
    if latest not in versions:
        logger.info("Latest version %s was not generated, leaving alias as is", latest)
    elif latest in failed_versions:
        logger.error("Latest version %s failed, not writing latest alias", latest)
    else:
        emit_latest(output_root, latest)

    logger.info(
        "Generated %d of %d schema version(s)",
        len(versions) - len(failed_versions),
        len(versions),
    )
    return failures
