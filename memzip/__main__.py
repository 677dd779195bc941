"""
Copyright 2025 DNAi inc.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

from __future__ import annotations

"""
Command-line interface for memzip (``memzip``).

Supported commands (via ``python -m memzip``):

- ``list``    : List entries in an archive
- ``info``    : Show a detailed table of entries
- ``extract`` : Extract entries to a directory, in bounded steps
- ``create``  : Create a new archive from files and directories
- ``test``    : Test archive integrity without extracting
- ``dump``    : Show the record layout of an archive

Example usages:

    python -m memzip list archive.zip
    python -m memzip extract archive.zip -d output --entries-per-step 4
    python -m memzip create archive.zip data
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Iterable, List, Optional

from . import __version__
from .archive import ZipFile, overview, progress
from .constants import COMPRESSION_DEFLATE, COMPRESSION_METHODS, METHOD_TO_NAME
from .debug import dump_zip_structure, verify_zip_structure
from .decoder import AnchoredDecoder, Decoder, SequentialDecoder, decode
from .errors import ZipError
from .extract import ExtractionConfig, Loop, extract
from .writer import ZipWriter


def _print_error(message: str, exit_code: int = 1, suggestion: Optional[str] = None) -> None:
    """Print an error message to stderr and exit with the given code.

    Args:
        message: Error message to display.
        exit_code: Exit code to use.
        suggestion: Optional suggestion to help the user resolve the error.
    """
    sys.stderr.write(f"memzip: {message}\n")
    if suggestion:
        sys.stderr.write(f"memzip: Suggestion: {suggestion}\n")
    sys.exit(exit_code)


def _decoder(sequential: bool) -> Decoder:
    return SequentialDecoder() if sequential else AnchoredDecoder()


def _load(archive: Path, sequential: bool = False) -> ZipFile:
    return decode(archive.read_bytes(), _decoder(sequential))


def _safe_extract_path(output_dir: Path, name: str) -> Path:
    """Resolve an entry name beneath *output_dir*, rejecting traversal.

    Raises:
        ValueError: If the name is absolute or escapes *output_dir*.
    """
    parts = Path(name).parts
    if Path(name).is_absolute() or name.startswith("/") or any(part == ".." for part in parts):
        raise ValueError(f"Refusing to extract unsafe entry name: {name!r}")
    return output_dir.joinpath(*parts)


def _cmd_list(archive: Path, sequential: bool = False) -> None:
    """List all entries in an archive, one per line."""
    for name in _load(archive, sequential).names():
        print(name)


def _cmd_info(archive: Path, sequential: bool = False) -> None:
    """Print a simple table with metadata for each entry."""
    zip_file = _load(archive, sequential)

    print(f"Archive: {archive}")
    print("=" * 80)
    print(f"{'Name':42}  {'Size':>10}  {'Compr.':>10}  {'Method':>8}  {'Modified':>19}")
    print("-" * 80)
    for info in overview(zip_file):
        method = METHOD_TO_NAME.get(info.compression_method, str(info.compression_method))
        display_name = info.name if len(info.name) <= 42 else info.name[:39] + "..."
        modified = info.date_time.strftime("%Y-%m-%d %H:%M:%S")
        print(f"{display_name:42}  {info.uncompressed_size:10d}  {info.compressed_size:10d}  {method:>8}  {modified:>19}")


def _cmd_extract(
    archive: Path,
    output_dir: Path,
    entries_per_step: int = 1,
    bytes_per_step: Optional[int] = None,
    quiet: bool = False,
    sequential: bool = False,
) -> None:
    """
    Extract all entries in *archive* into *output_dir*.

    Decompression runs in bounded steps; progress is printed between them
    unless *quiet* is set. Entries that cannot be extracted are reported
    and make the command exit with status 1.
    """
    zip_file = _load(archive, sequential)
    config = ExtractionConfig(
        max_entries_per_step=entries_per_step,
        max_bytes_per_step=bytes_per_step,
        classify_as_text=lambda name: False,
    )

    step = extract(config, zip_file)
    while isinstance(step, Loop):
        if not quiet:
            current = progress(step.zip_file)
            print(f"Extracting: {current.uncompressed_count}/{current.total} entries")
        step = extract(config, step.zip_file)

    # Refuse the whole archive before anything is written.
    targets = [(_safe_extract_path(output_dir, name), name, content) for name, content in step.entries]

    output_dir.mkdir(parents=True, exist_ok=True)
    for target_path, name, content in targets:
        if name.endswith("/"):
            target_path.mkdir(parents=True, exist_ok=True)
            continue
        target_path.parent.mkdir(parents=True, exist_ok=True)
        target_path.write_bytes(content.data)
        if not quiet:
            print(f"  {name}")

    if step.skipped:
        for name, reason in step.skipped.items():
            sys.stderr.write(f"memzip: skipped {name}: {reason}\n")
        _print_error(f"{len(step.skipped)} entries could not be extracted", exit_code=1)


def _iter_files_for_create(sources: Iterable[Path]) -> List[tuple[str, Path]]:
    """
    Return (name_in_zip, source_path) pairs for all files under *sources*.

    - Directories are walked recursively.
    - Files are added with paths relative to the common parent of all sources.
    """
    normalized: List[Path] = [p.resolve() for p in sources]
    if not normalized:
        return []

    base = normalized[0].parent
    for p in normalized[1:]:
        base = Path(os.path.commonpath([base, p.parent]))

    results: List[tuple[str, Path]] = []
    for src in normalized:
        if src.is_dir():
            for root, _, files in os.walk(src):
                root_path = Path(root)
                for filename in sorted(files):
                    file_path = root_path / filename
                    rel = file_path.relative_to(base)
                    results.append((str(rel).replace(os.sep, "/"), file_path))
        else:
            rel = src.relative_to(base)
            results.append((str(rel).replace(os.sep, "/"), src))

    return results


def _cmd_create(
    archive: Path,
    sources: List[Path],
    compression: str = COMPRESSION_DEFLATE,
    data_descriptor: bool = False,
    quiet: bool = False,
) -> None:
    """
    Create *archive* from the given list of source paths.

    *compression* is ``stored`` or ``deflate``; deflate falls back to stored
    for entries it would not shrink.
    """
    if archive.exists():
        _print_error(f"Refusing to overwrite existing archive: {archive}", exit_code=2)

    files = _iter_files_for_create(sources)
    if not files:
        _print_error("No files found to add to archive", exit_code=2)

    with ZipWriter(archive, compression=compression, use_data_descriptor=data_descriptor) as z:
        for name_in_zip, src_path in files:
            encoded = z.add_file(name_in_zip, str(src_path))
            if not quiet:
                print(f"  adding: {name_in_zip} ({encoded.uncompressed_size} -> {encoded.compressed_size} bytes)")


def _cmd_test(archive: Path, sequential: bool = False) -> None:
    """Decode *archive* and read back every entry."""
    ok, errors = verify_zip_structure(archive.read_bytes(), _decoder(sequential))
    if ok:
        print(f"{archive}: OK")
        return
    for error in errors:
        sys.stderr.write(f"memzip: {error}\n")
    _print_error(f"{archive}: {len(errors)} error(s) found", exit_code=1)


def _cmd_dump(archive: Path) -> None:
    print(dump_zip_structure(archive.read_bytes(), label=str(archive)))


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the top-level argument parser."""
    parser = argparse.ArgumentParser(
        prog="memzip",
        description="memzip - in-memory ZIP codec (library and CLI).",
    )
    parser.add_argument("--version", action="version", version=f"memzip {__version__}")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log output (-v for info, -vv for debug)",
    )
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Decode by scanning records from the start instead of from the end record",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_list = subparsers.add_parser("list", help="List entries in an archive")
    p_list.add_argument("archive", type=Path, help="Path to the ZIP archive")

    p_info = subparsers.add_parser("info", help="Show detailed info about archive entries")
    p_info.add_argument("archive", type=Path, help="Path to the ZIP archive")

    p_extract = subparsers.add_parser("extract", help="Extract entries to a directory")
    p_extract.add_argument("archive", type=Path, help="Path to the ZIP archive")
    p_extract.add_argument("-d", "--directory", type=Path, default=Path("."), help="Output directory")
    p_extract.add_argument(
        "--entries-per-step",
        type=int,
        default=1,
        help="Deflate entries decompressed per step (default: 1)",
    )
    p_extract.add_argument(
        "--bytes-per-step",
        type=int,
        default=None,
        help="Compressed bytes decompressed per step (default: no limit)",
    )
    p_extract.add_argument("-q", "--quiet", action="store_true", help="Suppress progress output")

    p_create = subparsers.add_parser("create", help="Create an archive from files and directories")
    p_create.add_argument("archive", type=Path, help="Path of the archive to create")
    p_create.add_argument("sources", type=Path, nargs="+", help="Files and directories to add")
    p_create.add_argument(
        "--compression",
        choices=sorted(COMPRESSION_METHODS),
        default=COMPRESSION_DEFLATE,
        help="Compression method (default: deflate)",
    )
    p_create.add_argument(
        "--data-descriptor",
        action="store_true",
        help="Write CRC and sizes after each entry's data, as streaming producers do",
    )
    p_create.add_argument("-q", "--quiet", action="store_true", help="Suppress per-file output")

    p_test = subparsers.add_parser("test", help="Test archive integrity")
    p_test.add_argument("archive", type=Path, help="Path to the ZIP archive")

    p_dump = subparsers.add_parser("dump", help="Show the record layout of an archive")
    p_dump.add_argument("archive", type=Path, help="Path to the ZIP archive")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the memzip CLI.

    This function is invoked when running:

        python -m memzip ...

    or via the ``memzip`` console script.
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = _build_parser()
    args = parser.parse_args(argv)

    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "list":
            _cmd_list(args.archive, sequential=args.sequential)
        elif args.command == "info":
            _cmd_info(args.archive, sequential=args.sequential)
        elif args.command == "extract":
            _cmd_extract(
                args.archive,
                args.directory,
                entries_per_step=args.entries_per_step,
                bytes_per_step=args.bytes_per_step,
                quiet=args.quiet,
                sequential=args.sequential,
            )
        elif args.command == "create":
            _cmd_create(
                args.archive,
                args.sources,
                compression=args.compression,
                data_descriptor=args.data_descriptor,
                quiet=args.quiet,
            )
        elif args.command == "test":
            _cmd_test(args.archive, sequential=args.sequential)
        elif args.command == "dump":
            _cmd_dump(args.archive)
    except ZipError as e:
        _print_error(f"Invalid archive: {e}", exit_code=1)
    except ValueError as e:
        _print_error(str(e), exit_code=2)
    except FileNotFoundError as e:
        suggestion = "Check that the file exists and the path is correct."
        _print_error(f"File not found: {e.filename}", exit_code=2, suggestion=suggestion)
    except PermissionError as e:
        _print_error(f"Permission denied: {e.filename}", exit_code=2)
    except KeyboardInterrupt:
        _print_error("Interrupted by user", exit_code=130)


if __name__ == "__main__":
    main()
