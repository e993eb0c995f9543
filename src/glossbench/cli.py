"""Command line interface for the glossing workbench engine."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .common.config import get_config_paths
from .common.enums import SortDirection, SortField, SortMode
from .common.errors import GlossbenchError
from .io.files import (
    atomic_write_text,
    import_text_file,
    load_project_file,
    save_project_file,
    save_typst_file,
)
from .io.json_format import dumps_compact_arrays
from .project.importer import ImportReport
from .project.migrate import migrate_to_latest_value
from .project.models import Project
from .scripting.tokenization import TokenizationRule
from .workspace.service import WorkbenchService

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)


def _emit(args: argparse.Namespace, payload: object, lines: list[str]) -> None:
    if args.json:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        for line in lines:
            print(line)


def _load(path: str) -> Project:
    report = ImportReport()
    project = load_project_file(Path(path), report=report)
    for warning in report.warnings:
        logger.warning(
            "Rule step skipped while rebuilding a derived word",
            extra={"rule_index": warning.rule_index, "word": warning.word},
        )
    return project


def _output_path(explicit: str | None, location: str, default_name: str) -> Path:
    if explicit:
        return Path(explicit)
    return get_config_paths()[location] / default_name


def _segment_row(project: Project, idx: int) -> dict[str, object]:
    segment = project.segments[idx]
    return {"index": idx, "text": segment.text, "translation": segment.translation}


def _run_import_text(args: argparse.Namespace) -> None:
    if args.rule_file:
        rule_path = Path(args.rule_file)
        try:
            command = rule_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ValueError(f"Cannot read rule file '{rule_path}': {exc}") from exc
        rule = TokenizationRule(description=rule_path.stem, command=command)
    elif args.by_char:
        rule = TokenizationRule.characters()
    else:
        rule = TokenizationRule.whitespace()

    project = import_text_file(Path(args.text), rule, progress=args.progress)
    out = _output_path(args.out, "projects", f"{project.project_name}.json")
    save_project_file(project, out)
    _emit(
        args,
        {"project_name": project.project_name, "segments": len(project.segments), "out": str(out)},
        [f"Imported {len(project.segments)} segments into {out}"],
    )


def _run_migrate(args: argparse.Namespace) -> None:
    source = Path(args.input)
    try:
        value = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Cannot read project '{source}': {exc}") from exc
    migrated = migrate_to_latest_value(value)
    atomic_write_text(Path(args.out), dumps_compact_arrays(migrated))
    _emit(
        args,
        {"out": args.out, "version": migrated["version"]},
        [f"Wrote version {migrated['version']} project to {args.out}"],
    )


def _run_info(args: argparse.Namespace) -> None:
    project = _load(args.project)
    translated = sum(1 for segment in project.segments if segment.translation)
    payload = {
        "project_name": project.project_name,
        "font_path": project.font_path,
        "segments": len(project.segments),
        "translated_segments": translated,
        "vocabulary": len(project.vocabulary),
        "formation_rules": [
            {"description": rule.description, "type": rule.rule_type.value}
            for rule in project.formation_rules
        ],
    }
    lines = [
        f"Project: {project.project_name}",
        f"Segments: {len(project.segments)} ({translated} translated)",
        f"Vocabulary: {len(project.vocabulary)} words",
        f"Formation rules: {len(project.formation_rules)}",
    ]
    lines.extend(
        f"  [{idx}] {rule.description} ({rule.rule_type.value})"
        for idx, rule in enumerate(project.formation_rules)
    )
    _emit(args, payload, lines)


def _run_filter(args: argparse.Namespace) -> None:
    project = _load(args.project)
    mode = SortMode(
        SortField(args.sort),
        SortDirection.DESCENDING if args.desc else SortDirection.ASCENDING,
    )
    indices = WorkbenchService(project).filtered_indices(args.query, mode)
    rows = [_segment_row(project, idx) for idx in indices]
    _emit(
        args,
        {"sort": mode.display_text(), "segments": rows},
        [f"{row['index']}\t{row['text']}\t{row['translation']}" for row in rows],
    )


def _run_lookup(args: argparse.Namespace) -> None:
    project = _load(args.project)
    service = WorkbenchService(project)
    if args.mode == "headword":
        indices = service.headword_segments(args.word)
    else:
        indices = service.usage_segments(args.word)
    rows = [_segment_row(project, idx) for idx in indices]
    _emit(
        args,
        {"word": args.word, "mode": args.mode, "segments": rows},
        [f"{row['index']}\t{row['text']}" for row in rows],
    )


def _run_similar(args: argparse.Namespace) -> None:
    project = _load(args.project)
    hits = WorkbenchService(project).similar_segments(args.index, args.k)
    rows = [{**_segment_row(project, idx), "score": round(score, 6)} for idx, score in hits]
    _emit(
        args,
        {"target": args.index, "results": rows},
        [f"{row['index']}\t{row['score']:.4f}\t{row['text']}" for row in rows],
    )


def _run_similar_tokens(args: argparse.Namespace) -> None:
    project = _load(args.project)
    matches = WorkbenchService(project).similar_tokens(args.word)
    payload = [
        {"word": item.word, "distance": item.distance, "lcs_length": item.lcs_length}
        for item in matches
    ]
    _emit(
        args,
        {"word": args.word, "results": payload},
        [f"{item.word}\t{item.distance}\t{item.lcs_length}" for item in matches],
    )


def _run_typst(args: argparse.Namespace) -> None:
    project = _load(args.project)
    out = _output_path(args.out, "exports", f"{project.project_name or Path(args.project).stem}.typ")
    save_typst_file(project, out)
    _emit(args, {"out": str(out)}, [f"Wrote Typst markup to {out}"])


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="glossbench",
        description="Interlinear glossing workbench tools",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")

    subparsers = parser.add_subparsers(dest="command", required=True)

    import_text = subparsers.add_parser("import-text", help="Tokenize a text file into a new project")
    import_text.add_argument("text", help="UTF-8 text file")
    import_text.add_argument("--out", help="Project file to write (default: data dir)")
    split = import_text.add_mutually_exclusive_group()
    split.add_argument("--by-char", action="store_true", help="One token per character")
    split.add_argument("--rule-file", help="Script defining tokenize(line)")
    import_text.add_argument("--progress", action="store_true", help="Show a progress bar")
    import_text.set_defaults(handler=_run_import_text)

    migrate = subparsers.add_parser("migrate", help="Upgrade a project file to the current version")
    migrate.add_argument("input", help="Project file to read")
    migrate.add_argument("--out", required=True, help="Project file to write")
    migrate.set_defaults(handler=_run_migrate)

    info = subparsers.add_parser("info", help="Summarize a project")
    info.add_argument("project")
    info.set_defaults(handler=_run_info)

    filter_parser = subparsers.add_parser("filter", help="Filter and sort segments")
    filter_parser.add_argument("project")
    filter_parser.add_argument("--query", default="", help="Case-insensitive substring")
    filter_parser.add_argument(
        "--sort",
        choices=[field.value for field in SortField],
        default=SortField.INDEX.value,
        help="Sort field",
    )
    filter_parser.add_argument("--desc", action="store_true", help="Sort descending")
    filter_parser.set_defaults(handler=_run_filter)

    lookup = subparsers.add_parser("lookup", help="Segments starting with or using a word")
    lookup.add_argument("project")
    lookup.add_argument("word")
    lookup.add_argument("--mode", choices=["headword", "usage"], default="usage")
    lookup.set_defaults(handler=_run_lookup)

    similar = subparsers.add_parser("similar", help="Segments similar to a segment (TF-IDF)")
    similar.add_argument("project")
    similar.add_argument("index", type=int)
    similar.add_argument("-k", type=int, default=None, help="Number of results")
    similar.set_defaults(handler=_run_similar)

    similar_tokens = subparsers.add_parser("similar-tokens", help="Words spelled like a word")
    similar_tokens.add_argument("project")
    similar_tokens.add_argument("word")
    similar_tokens.set_defaults(handler=_run_similar_tokens)

    typst = subparsers.add_parser("typst", help="Export Typst markup")
    typst.add_argument("project")
    typst.add_argument("--out", help="Typst file to write (default: exports dir)")
    typst.set_defaults(handler=_run_typst)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:  # pragma: no cover - delegated to argparse
        return exc.code

    _configure_logging(args.verbose)

    try:
        args.handler(args)
    except (GlossbenchError, IndexError, ValueError) as error:
        logger.error(f"Command failed. Reason: {error}", extra={"error": str(error)})
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())
