from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from ads_ingest import __version__ as TOOL_VERSION
from ads_ingest.config import DEFAULT_MAX_WORKERS, ROLLUP_DAYS, IngestSettings
from ads_ingest.contracts import build_contract, build_run_summary
from ads_ingest.merge import merge_tier1, merge_tier2
from ads_ingest.models import BatchResult
from ads_ingest.pipeline import process_files
from ads_ingest.prompt_builder import build_context
from ads_ingest.signatures import DEFAULT_REGISTRY
from ads_ingest.store import ADS_INTEL_KEY, DAILY_LEDGER_KEY, JsonFileStore

TOOL_NAME = "ads-ingest"

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_NOTHING_RECOGNIZED = 2
EXIT_PARTIAL = 3

logger = logging.getLogger(__name__)


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class AdsIngestArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True, default=str)


def configure_logging(args: argparse.Namespace) -> None:
    level = logging.INFO
    if getattr(args, "quiet", False):
        level = logging.WARNING
    if getattr(args, "verbose", False):
        level = logging.DEBUG
    logging.basicConfig(level=level, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    return EXIT_COMMAND_ERROR


def require_inputs(paths: list[str]) -> list[Path]:
    inputs = [Path(path) for path in paths]
    missing = [str(path) for path in inputs if not path.exists()]
    if missing:
        raise CliError(f"File not found: {', '.join(missing)}", EXIT_COMMAND_ERROR)
    return inputs


def exit_code_for_batch(batch: BatchResult) -> int:
    summary = batch.summary
    if summary.tier1 + summary.tier2 == 0:
        return EXIT_NOTHING_RECOGNIZED
    if summary.unrecognized:
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def batch_status(code: int) -> str:
    return {EXIT_SUCCESS: "ok", EXIT_PARTIAL: "partial", EXIT_NOTHING_RECOGNIZED: "unrecognized"}.get(code, "error")


def batch_warnings(batch: BatchResult) -> list[str]:
    warnings = []
    for item in batch.unrecognized:
        if item.error:
            warnings.append(f"{item.file_name}: {item.error}")
        else:
            warnings.append(f"{item.file_name}: unrecognized headers {item.headers}")
    return warnings


def render_batch_text(batch: BatchResult) -> str:
    summary = batch.summary
    lines = [
        f"Processed {summary.files_processed} file(s): "
        f"{summary.tier1} tier-1, {summary.tier2} tier-2, {summary.unrecognized} unrecognized",
    ]
    for entry in summary.report_types:
        lines.append(f"  [T{entry['tier']}] {entry['type']:<28} {entry['label']} ({entry['file_name']})")
    for item in batch.unrecognized:
        detail = item.error or f"headers: {', '.join(item.headers) or '(none)'}"
        lines.append(f"  [--] {'unrecognized':<28} {item.file_name} ({detail})")
    if summary.platforms:
        lines.append(f"Platforms: {', '.join(summary.platforms)}")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = AdsIngestArgumentParser(prog=TOOL_NAME, description="Classify and ingest ads/sales report exports.")
    subparsers = parser.add_subparsers(dest="command", required=True, parser_class=AdsIngestArgumentParser)

    ingest = subparsers.add_parser("ingest", help="Classify and parse report files, optionally merging into a store.")
    ingest.add_argument("inputs", nargs="+", help="Report files (.csv .tsv .xlsx .xls .zip)")
    ingest.add_argument("--store", help="JSON store to merge results into")
    ingest.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    ingest.add_argument("--no-threads", dest="use_threads", action="store_false", help="Process files sequentially")
    ingest.add_argument("--workers", type=int, default=DEFAULT_MAX_WORKERS, help="Thread pool size")
    ingest.add_argument("--dry-run", action="store_true", help="Merge in memory without saving the store")
    ingest.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    ingest.add_argument("-v", "--verbose", action="store_true", help="More human logs")

    classify = subparsers.add_parser("classify", help="Report which report type each sheet is.")
    classify.add_argument("inputs", nargs="+", help="Report files (.csv .tsv .xlsx .xls .zip)")
    classify.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    classify.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    classify.add_argument("-v", "--verbose", action="store_true", help="More human logs")

    prompt = subparsers.add_parser("prompt", help="Print the bounded context text built from a store.")
    prompt.add_argument("--store", required=True, help="JSON store written by 'ingest --store'")
    prompt.add_argument("--days", type=int, default=ROLLUP_DAYS, help="Ledger days to include")
    prompt.add_argument("--store-name", help="Store or brand name for the preamble")
    prompt.add_argument("--campaigns", help="JSON file with a 'campaigns' list")
    prompt.add_argument("--include-all-threshold", type=float, help="Emit every row when a report has at most this many")
    prompt.add_argument("--max-rows-per-report", type=float, help="Top rows per large report")
    prompt.add_argument("--max-waste-rows", type=float, help="Wasteful-spend rows per report")
    prompt.add_argument("--max-campaign-rows", type=float, help="Campaign rows to list")
    prompt.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    prompt.add_argument("-v", "--verbose", action="store_true", help="More human logs")

    signatures = subparsers.add_parser("signatures", help="List known report signatures in priority order.")
    signatures.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    subparsers.add_parser("version", help="Print version")
    return parser


def run_ingest(args: argparse.Namespace) -> int:
    try:
        inputs = require_inputs(args.inputs)
        if args.workers < 1:
            raise CliError("--workers must be at least 1", EXIT_COMMAND_ERROR)
        settings = IngestSettings(use_threads=args.use_threads, max_workers=args.workers)
        batch = process_files(inputs, settings=settings)
        code = exit_code_for_batch(batch)

        store_path = None
        if args.store:
            store = JsonFileStore(args.store)
            store.set(DAILY_LEDGER_KEY, merge_tier1(store.get(DAILY_LEDGER_KEY, {}), batch.tier1_results))
            store.set(ADS_INTEL_KEY, merge_tier2(store.get(ADS_INTEL_KEY, {}), batch.tier2_results))
            if args.dry_run:
                emit_human(f"Dry run: store not written ({store.path})", quiet=args.quiet)
            else:
                store_path = str(store.save())

        if args.json:
            payload = {
                "contract": build_contract("ads_ingest.ingest"),
                "run_summary": build_run_summary(
                    tool=TOOL_NAME,
                    command="ingest",
                    inputs=[str(path) for path in inputs],
                    status=batch_status(code),
                    store_path=store_path,
                    metrics=batch.summary.to_dict(),
                    warnings=batch_warnings(batch),
                ),
                "tier1": [result.to_dict() for result in batch.tier1_results],
                "tier2": [
                    {key: value for key, value in result.to_dict().items() if key != "data"}
                    for result in batch.tier2_results
                ],
                "unrecognized": [item.to_dict() for item in batch.unrecognized],
            }
            print(json_dumps(payload))
        else:
            emit_human(render_batch_text(batch), quiet=args.quiet)
            if store_path:
                emit_human(f"Store updated: {store_path}", quiet=args.quiet)
        return code
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_classify(args: argparse.Namespace) -> int:
    try:
        inputs = require_inputs(args.inputs)
        batch = process_files(inputs, settings=IngestSettings(use_threads=False))
        code = exit_code_for_batch(batch)
        if args.json:
            payload = {
                "contract": build_contract("ads_ingest.classify"),
                "report_types": batch.summary.report_types,
                "unrecognized": [item.to_dict() for item in batch.unrecognized],
                "platforms": batch.summary.platforms,
            }
            print(json_dumps(payload))
        else:
            print(render_batch_text(batch))
        return code
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def load_campaigns(path: str | None) -> dict[str, Any] | None:
    if not path:
        return None
    campaign_path = Path(path)
    if not campaign_path.exists():
        raise CliError(f"File not found: {campaign_path}", EXIT_COMMAND_ERROR)
    try:
        payload = json.loads(campaign_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CliError(f"Campaign file is not valid JSON: {exc}", EXIT_COMMAND_ERROR) from exc
    if isinstance(payload, list):
        return {"campaigns": payload}
    if not isinstance(payload, dict):
        raise CliError("Campaign file must hold an object or a list", EXIT_COMMAND_ERROR)
    return payload


def run_prompt(args: argparse.Namespace) -> int:
    try:
        store_path = Path(args.store)
        if not store_path.exists():
            raise CliError(f"Store not found: {store_path}", EXIT_COMMAND_ERROR)
        store = JsonFileStore(store_path)
        ledger = store.get(DAILY_LEDGER_KEY, {}) or {}
        days = max(args.days, 0)
        excerpt = {day: ledger[day] for day in sorted(ledger)[-days:]} if days else {}
        options = {
            "include_all_threshold": args.include_all_threshold,
            "max_rows_per_report": args.max_rows_per_report,
            "max_waste_rows": args.max_waste_rows,
            "max_campaign_rows": args.max_campaign_rows,
        }
        text = build_context(
            store.get(ADS_INTEL_KEY, {}),
            excerpt,
            load_campaigns(args.campaigns),
            {key: value for key, value in options.items() if value is not None},
            store_name=args.store_name,
        )
        print(text)
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_signatures(args: argparse.Namespace) -> int:
    signatures = [signature.to_dict() for signature in DEFAULT_REGISTRY]
    if args.json:
        payload = {
            "contract": build_contract("ads_ingest.signatures"),
            "signatures": signatures,
            "platforms": DEFAULT_REGISTRY.platforms(),
        }
        print(json_dumps(payload))
        return EXIT_SUCCESS
    for signature in DEFAULT_REGISTRY:
        print(f"T{signature.tier}  {signature.platform:<8} {signature.id:<26} {signature.label}")
        print(f"      required: {', '.join(signature.required)}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        configure_logging(args)
        if args.command == "ingest":
            return run_ingest(args)
        if args.command == "classify":
            return run_classify(args)
        if args.command == "prompt":
            return run_prompt(args)
        if args.command == "signatures":
            return run_signatures(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
