"""reg-index CLI: manage a sharded package registry index."""

import argparse
import logging
import sys
from importlib.metadata import version as get_version, PackageNotFoundError
from pathlib import Path
from typing import Optional

from reg_index.errors import RegIndexError


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _no_entries_message(name: Optional[str], requirement: Optional[str]) -> str:
    if name is not None and requirement is not None:
        return f"No entries found for `{name}` that match version `{requirement}`."
    if name is not None:
        return f"Package `{name}` is not in the index."
    if requirement is not None:
        return f"No packages matching version requirement `{requirement}` found."
    return "The index is empty!"


def main():
    """Main CLI entry point for reg-index commands."""
    # Get version for --version argument (handle PackageNotFoundError)
    try:
        reg_index_version = get_version("reg-index")
    except PackageNotFoundError:
        reg_index_version = "dev"

    parser = argparse.ArgumentParser(
        prog="reg-index",
        description="Manage a Cargo-style sharded package registry index"
    )
    parser.add_argument("--version", action="version", version=f"reg-index {reg_index_version}")
    # Common arguments
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress all non-error output."
    )
    parent_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug output to stderr."
    )
    parent_parser.add_argument(
        "--index",
        type=Path,
        required=True,
        help="Path to the index root"
    )
    # Arguments of commands that commit to the index history
    commit_parser = argparse.ArgumentParser(add_help=False)
    commit_parser.add_argument(
        "--no-commit",
        action="store_true",
        help="Write files without committing them (index not under git)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init command
    init_parser = subparsers.add_parser(
        "init",
        help="Create a new, empty index",
        parents=[parent_parser, commit_parser]
    )
    init_parser.add_argument(
        "--dl",
        required=True,
        help="Download URL template for config.json (may use {crate} and {version})"
    )
    init_parser.add_argument(
        "--api",
        default=None,
        help="API base URL for config.json"
    )

    # add command
    add_parser = subparsers.add_parser(
        "add",
        help="Add an entry to the index",
        parents=[parent_parser, commit_parser]
    )
    add_parser.add_argument(
        "--entry",
        required=True,
        help="Path to a JSON file holding the entry, or '-' to read it from stdin"
    )
    add_parser.add_argument(
        "--crate",
        type=Path,
        default=None,
        help="Artifact file; its sha256 must match the entry's cksum"
    )
    add_parser.add_argument(
        "--upload",
        default=None,
        help="Directory template to copy the artifact into (requires --crate)"
    )
    add_parser.add_argument(
        "--force",
        action="store_true",
        help="Replace an existing entry with the same version"
    )

    # yank / unyank commands
    for command, help_text in (
        ("yank", "Mark a version as yanked"),
        ("unyank", "Clear the yanked flag of a version"),
    ):
        yank_parser = subparsers.add_parser(
            command,
            help=help_text,
            parents=[parent_parser, commit_parser]
        )
        yank_parser.add_argument(
            "-p", "--package",
            required=True,
            help="Package name"
        )
        yank_parser.add_argument(
            "--version",
            dest="vers",
            required=True,
            help="Exact version"
        )

    # list command
    list_parser = subparsers.add_parser(
        "list",
        help="Print matching entries, one JSON line each",
        parents=[parent_parser]
    )
    list_parser.add_argument(
        "-p", "--package",
        default=None,
        help="Only list this package"
    )
    list_parser.add_argument(
        "--version",
        dest="requirement",
        default=None,
        help="Only list versions matching this requirement"
    )

    # validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Check the whole index for consistency",
        parents=[parent_parser]
    )
    validate_parser.add_argument(
        "--crates",
        default=None,
        help="Artifact directory template; enables checksum checks"
    )
    validate_parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Output directory for validate_index.json"
    )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    _configure_logging(args.verbose)

    def _sink():
        from reg_index.api import NullSink

        return NullSink() if args.no_commit else None

    try:
        if args.command == "init":
            from reg_index.api import init

            config = init(args.index, args.dl, api=args.api, sink=_sink())
            if not args.quiet:
                print("[OK] Index created")
                print(f"  Index: {args.index}")
                print(f"  dl: {config.dl}")
                if config.api is not None:
                    print(f"  api: {config.api}")
        elif args.command == "add":
            from reg_index.api import add, load_entry, load_entry_file

            if args.entry == "-":
                entry = load_entry(sys.stdin.read(), source="stdin", artifact=args.crate)
            else:
                entry = load_entry_file(args.entry, artifact=args.crate)
            record = add(
                args.index,
                entry,
                force=args.force,
                artifact=args.crate,
                upload=args.upload,
                sink=_sink(),
            )
            if not args.quiet:
                print(f"[OK] Added {record.key}")
        elif args.command in ("yank", "unyank"):
            from reg_index.api import unyank, yank

            operation = yank if args.command == "yank" else unyank
            record = operation(args.index, args.package, args.vers, sink=_sink())
            if not args.quiet:
                print(f"[OK] {'Yanked' if record.yanked else 'Unyanked'} {record.key}")
        elif args.command == "list":
            from reg_index._internal.codec import encode_record
            from reg_index.api import list_all

            count = list_all(
                args.index,
                lambda record: print(encode_record(record)),
                name=args.package,
                requirement=args.requirement,
            )
            if count == 0:
                print(f"Error: {_no_entries_message(args.package, args.requirement)}", file=sys.stderr)
                sys.exit(1)
        elif args.command == "validate":
            from reg_index.api import validate
            from reg_index._internal.canonical_json import canonical_dumps

            result = validate(args.index, artifacts=args.crates)
            output_dir: Optional[Path] = args.output_dir
            if output_dir is not None:
                output_dir.mkdir(parents=True, exist_ok=True)
                report_out = output_dir / "validate_index.json"
                report_out.write_text(canonical_dumps(result.model_dump()) + "\n", encoding="utf-8")
            if not args.quiet:
                status = "OK" if result.ok else "FAILED"
                print(f"[{status}] Validation complete")
                if output_dir is not None:
                    print(f"  Report: {report_out}")
                print(f"  Status: {status}")
                print(f"  Files: {result.files_checked}")
                print(f"  Entries: {result.records_checked}")
                print(f"  Errors: {len(result.errors)}")
                print(f"  Warnings: {len(result.warnings)}")
                for issue in result.errors:
                    print(f"  [{issue.code}] {issue.message}")
            if not result.ok:
                sys.exit(1)
        else:
            parser.print_help()
            sys.exit(1)
    except (RegIndexError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
