"""Command line interface for localeforge."""

from __future__ import annotations

import argparse
import difflib
import json
import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

from .codemod import Patcher
from .configuration import LocaleForgeConfig, get_config, get_settings
from .errors import (
    ConfigurationError,
    InvalidInputError,
    LocaleForgeError,
    ScanAborted,
    SourceParseError,
    StaleLocationError,
)
from .keys import namespace_from_file, suggest_key
from .scanner import Scanner
from .structures import ImportKind, PatchResult, ScanReport, TranslationTarget


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="localeforge",
        description=(
            "Find user-facing strings in JavaScript/TypeScript sources and wrap them "
            "in translation calls."
        ),
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress information.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    scan = commands.add_parser("scan", help="List translatable and translated strings.")
    scan.add_argument("root", help="Project directory to scan.")
    scan.add_argument(
        "-e",
        "--extension",
        action="append",
        dest="extensions",
        help="File extension to include, repeatable (default from configuration).",
    )
    scan.add_argument(
        "-i",
        "--ignore",
        action="append",
        help="Directory name or glob to exclude, repeatable (default from configuration).",
    )
    scan.add_argument(
        "-d",
        "--directory",
        action="append",
        dest="include_dirs",
        help="Restrict the scan to this directory under the root, repeatable.",
    )
    scan.add_argument(
        "-n",
        "--namespace",
        help="Fallback namespace for suggested keys.",
    )
    scan.add_argument("--workers", type=int, help="Number of files parsed in parallel.")
    scan.add_argument(
        "--max-failures",
        type=int,
        help="Stop once this many files could not be parsed.",
    )
    scan.add_argument(
        "--no-localized",
        action="store_true",
        help="Hide strings that are already wrapped in a translation call.",
    )
    scan.add_argument("--json", action="store_true", help="Print candidates as JSON.")

    wrap = commands.add_parser("wrap", help="Wrap one string in a translation call.")
    wrap.add_argument("file", help="Source file, absolute or relative to --project-root.")
    wrap.add_argument("--line", type=int, required=True, help="1-based line of the string.")
    wrap.add_argument("--column", type=int, required=True, help="0-based column of the string.")
    wrap.add_argument("--text", required=True, help="The string as reported by `scan`.")
    wrap.add_argument("--key", required=True, help="Translation key to install.")
    wrap.add_argument(
        "-f",
        "--function",
        dest="function_name",
        help="Translation function, e.g. t or intl.formatMessage.",
    )
    wrap.add_argument("--import-source", help="Module the translation function is imported from.")
    wrap.add_argument(
        "--import-kind",
        choices=[kind.value for kind in ImportKind],
        help="Import the function as a named or default import.",
    )
    wrap.add_argument("--skip-import", action="store_true", help="Never touch imports.")
    wrap.add_argument("--project-root", help="Directory relative file paths are resolved against.")
    wrap.add_argument(
        "--dry-run",
        action="store_true",
        help="Print a unified diff instead of writing the file.",
    )

    suggest = commands.add_parser("suggest", help="Suggest a translation key for a text.")
    suggest.add_argument("text", help="Text to derive a key from.")
    suggest.add_argument("-n", "--namespace", help="Namespace prefix for the key.")
    suggest.add_argument("--file", help="Derive the namespace from this file name.")

    commands.add_parser("config", help="Show the effective configuration.")
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )


def execute_scan(
    args: argparse.Namespace,
    settings: LocaleForgeConfig,
) -> tuple[int, ScanReport | None, str | None]:
    """Run a scan and return the exit code, report, and message."""

    scanner = Scanner(
        root=args.root,
        extensions=args.extensions or settings.extensions,
        ignore=args.ignore if args.ignore is not None else settings.ignore,
        include_dirs=args.include_dirs or settings.include_dirs,
        translation_functions=settings.translation_functions,
        workers=args.workers or settings.workers,
        max_failures=args.max_failures or settings.max_failures,
    )
    try:
        report = scanner.run()
    except NotADirectoryError as exc:
        return 1, None, str(exc)
    except ScanAborted as exc:
        return 2, None, str(exc)
    return 0, report, None


def execute_wrap(
    args: argparse.Namespace,
    settings: LocaleForgeConfig,
) -> tuple[int, PatchResult | None, str | None]:
    """Apply one patch and return the exit code, result, and message."""

    target = TranslationTarget(
        file_path=args.file,
        text=args.text,
        line=args.line,
        column=args.column,
        key=args.key,
        function_name=args.function_name or settings.function_name,
        import_source=args.import_source if args.import_source is not None else settings.import_source,
        import_kind=ImportKind(args.import_kind or settings.import_kind),
        skip_import=args.skip_import,
    )
    patcher = Patcher(project_root=args.project_root)

    try:
        if args.dry_run:
            path, original, updated, _ = patcher.render(target)
            diff = difflib.unified_diff(
                original.splitlines(keepends=True),
                updated.splitlines(keepends=True),
                fromfile=str(path),
                tofile=str(path),
            )
            return 0, None, "".join(diff)
        result = patcher.apply(target)
    except StaleLocationError as exc:
        return 2, None, str(exc)
    except InvalidInputError as exc:
        return 1, None, str(exc)
    except SourceParseError as exc:
        return 1, None, f"Could not parse {exc.path}: {exc}"
    except FileNotFoundError:
        return 1, None, f"Source file not found: {args.file}"
    except OSError as exc:
        return 1, None, f"Could not update {args.file}: {exc}"
    except LocaleForgeError as exc:
        return 1, None, str(exc)
    return 0, result, None


def print_candidates(report: ScanReport, namespace: str, *, include_localized: bool) -> None:
    for candidate in report.candidates:
        if candidate.localized and not include_localized:
            continue
        location = f"{candidate.file}:{candidate.line}:{candidate.column}"
        if candidate.localized:
            print(f"{location}  [localized] {candidate.key_path}")
        else:
            key = suggest_key(candidate.text, namespace_from_file(candidate.file, namespace))
            print(f"{location}  {candidate.text!r} -> {key}")


def print_summary(report: ScanReport) -> None:
    """Output a short report once scanning completes."""

    plain = len(report.candidates) - report.localized_count
    print("\nScan complete.")
    print(f"  Root:            {report.root}")
    print(f"  Files scanned:   {report.files_scanned}")
    print(f"  Candidates:      {plain} untranslated / {report.localized_count} localized")
    print(f"  Elapsed time:    {report.elapsed_seconds:.2f} seconds")
    if report.failures:
        print("  Skipped files:")
        for record in report.failures:
            print(f"    - {record.message}")


def candidates_as_json(report: ScanReport, namespace: str, *, include_localized: bool) -> str:
    payload = []
    for candidate in report.candidates:
        if candidate.localized and not include_localized:
            continue
        entry = candidate.to_dict()
        if not candidate.localized:
            entry["keySuggestion"] = suggest_key(
                candidate.text, namespace_from_file(candidate.file, namespace)
            )
        payload.append(entry)
    return json.dumps(payload, ensure_ascii=False, indent=2)


def print_config(app_dir: Optional[Path] = None) -> None:
    loaded = get_config(app_dir)
    for name, value in loaded.settings.model_dump().items():
        print(f"{name:<22} {value!r}  ({loaded.source_of(name)})")


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    configure_logging(args.verbose)

    try:
        settings = get_settings()
    except ConfigurationError as exc:
        print(exc)
        return 1

    if args.command == "config":
        print_config()
        return 0

    if args.command == "suggest":
        namespace = args.namespace or settings.namespace
        if args.file:
            namespace = namespace_from_file(args.file, namespace)
        print(suggest_key(args.text, namespace))
        return 0

    if args.command == "wrap":
        exit_code, result, message = execute_wrap(args, settings)
        if message:
            print(message)
        if result:
            suffix = " (import updated)" if result.import_changed else ""
            print(f"Updated {result.path}{suffix}")
        return exit_code

    exit_code, report, message = execute_scan(args, settings)
    if message:
        print(message)
    if report:
        namespace = args.namespace or settings.namespace
        if args.json:
            print(candidates_as_json(report, namespace, include_localized=not args.no_localized))
        else:
            print_candidates(report, namespace, include_localized=not args.no_localized)
            print_summary(report)
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
