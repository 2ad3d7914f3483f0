import logging
import sys
from argparse import ArgumentParser
from pathlib import Path
from sys import stderr
from time import perf_counter

from ocsf_model_compiler import __version__
from ocsf_model_compiler.compiler import (
    DEFAULT_OUTPUT_DIR,
    DEFAULT_SCHEMAS_DIR,
    LATEST_VERSION,
    SUPPORTED_VERSIONS,
    generate,
)
from ocsf_model_compiler.model import VersionFailure
from ocsf_model_compiler.source import fetch_versions

logger = logging.getLogger(__name__)


def _report_failures(failures: list[VersionFailure]) -> None:
    if failures:
        print(f"{len(failures)} schema version(s) failed:", file=stderr)
        for failure in failures:
            print(f"  {failure.version}: {failure.error}", file=stderr)
        sys.exit(1)


def main():
    common = ArgumentParser(add_help=False)
    common.add_argument(
        "--schemas-dir",
        type=Path,
        default=DEFAULT_SCHEMAS_DIR,
        help="directory holding one raw schema tree per version, named v<version>;"
        " default: %(default)s",
    )
    common.add_argument(
        "-V",
        "--version",
        action="append",
        metavar="VERSION",
        dest="versions",
        help="schema version to process; can be repeated; default: all supported"
        f" versions ({', '.join(SUPPORTED_VERSIONS)})",
    )
    common.add_argument(
        "--log-level",
        choices=("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"),
        default="INFO",
        help="set log level; logs are written to standard error; default: %(default)s",
    )

    parser = ArgumentParser(
        description=f"Open Cybersecurity Schema Framework Model Compiler, version "
        f"{__version__}. Compile OCSF schema versions into Python packages of pydantic"
        " models. Logs are written to standard error.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version="%(prog)s " + __version__,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "download",
        parents=[common],
        help="download raw schema trees (a shallow git clone of"
        " https://github.com/ocsf/ocsf-schema per release tag)",
    )

    generate_parser = subparsers.add_parser(
        "generate",
        parents=[common],
        help="download (unless already present) and compile schema versions",
    )
    generate_parser.add_argument(
        "-o",
        "--output-dir",
        type=Path,
        default=DEFAULT_OUTPUT_DIR,
        help="package directory receiving one sub-package per version;"
        " default: %(default)s",
    )
    generate_parser.add_argument(
        "--latest",
        default=LATEST_VERSION,
        metavar="VERSION",
        help="version aliased by the latest module; default: %(default)s",
    )
    generate_parser.add_argument(
        "--no-download",
        action="store_false",
        default=True,
        dest="download",
        help="only use schema trees already under the schemas directory",
    )
    generate_parser.add_argument(
        "-j",
        "--jobs",
        type=int,
        default=1,
        help="number of versions to compile in parallel; default: %(default)s",
    )

    args = parser.parse_args()
    if args.command == "generate" and args.jobs < 1:
        parser.error("-j, --jobs must be at least 1")

    logging.basicConfig(
        format="%(levelname)s: %(message)s",
        style="%",
        stream=stderr,
        level=args.log_level,
    )

    versions = args.versions or list(SUPPORTED_VERSIONS)
    start_seconds = perf_counter()

    if args.command == "download":
        _, failures = fetch_versions(versions, args.schemas_dir)
    else:
        failures = generate(
            versions,
            schemas_dir=args.schemas_dir,
            output_root=args.output_dir,
            latest=args.latest,
            jobs=args.jobs,
            download=args.download,
        )

    duration = perf_counter() - start_seconds
    logger.info("%s took %.3f seconds", args.command.capitalize(), duration)

    _report_failures(failures)


if __name__ == "__main__":
    main()
