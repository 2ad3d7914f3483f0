import logging
import shutil
import subprocess
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Callable, TypeAlias

from ocsf_model_compiler.exceptions import RetrievalException
from ocsf_model_compiler.model import SchemaVersion, VersionFailure

logger = logging.getLogger(__name__)

REPOSITORY_URL = "https://github.com/ocsf/ocsf-schema.git"

Runner: TypeAlias = Callable[..., subprocess.CompletedProcess]


def version_dir(schemas_dir: Path, version: str) -> Path:
    return schemas_dir / f"v{version}"


def local_version(version: str, schemas_dir: Path) -> SchemaVersion:
    """Return an already materialized schema version without fetching anything."""
    path = version_dir(schemas_dir, version)
    if not path.is_dir():
        raise RetrievalException(
            f"Schema {version} has not been downloaded (expected {path})"
        )
    return SchemaVersion(version, path)


def fetch_version(
    version: str,
    schemas_dir: Path,
    repository: str = REPOSITORY_URL,
    runner: Runner = subprocess.run,
) -> SchemaVersion:
    """
    Materialize the raw schema tree of a version under schemas_dir, cloning the
    release tag v<version> of the schema repository unless the directory already
    exists. A failed clone leaves nothing behind.
    """
    path = version_dir(schemas_dir, version)
    if path.is_dir():
        logger.info("Schema %s already present at %s, skipping download", version, path)
        return SchemaVersion(version, path)

    logger.info("Downloading schema %s from %s", version, repository)
    schemas_dir.mkdir(parents=True, exist_ok=True)
    staging_path = Path(tempfile.mkdtemp(dir=schemas_dir, prefix=f".v{version}-"))
    clone_path = staging_path / "ocsf-schema"
    command = [
        "git",
        "clone",
        "--depth",
        "1",
        "--branch",
        f"v{version}",
        repository,
        str(clone_path),
    ]
    try:
        runner(command, check=True, capture_output=True, text=True)
        if not (clone_path / "version.json").is_file():
            raise RetrievalException(
                f"Clone of schema {version} does not look like a schema directory"
                f" (no version.json): {repository}"
            )
        clone_path.rename(path)
    except subprocess.CalledProcessError as e:
        detail = (e.stderr or "").strip() or f"exit status {e.returncode}"
        raise RetrievalException(
            f"Unable to clone schema {version} from {repository}: {detail}"
        ) from e
    except OSError as e:
        raise RetrievalException(
            f"Unable to materialize schema {version} at {path}: {e}"
        ) from e
    finally:
        shutil.rmtree(staging_path, ignore_errors=True)

    logger.info("Downloaded schema %s to %s", version, path)
    return SchemaVersion(version, path)


def fetch_versions(
    versions: Iterable[str],
    schemas_dir: Path,
    repository: str = REPOSITORY_URL,
    runner: Runner = subprocess.run,
) -> tuple[list[SchemaVersion], list[VersionFailure]]:
    """Fetch every version, collecting failures rather than stopping at the first."""
    fetched = []
    failures = []
    for version in versions:
        try:
            fetched.append(fetch_version(version, schemas_dir, repository, runner))
        except RetrievalException as e:
            logger.error("%s", e)
            failures.append(VersionFailure(version, str(e)))
    return fetched, failures
