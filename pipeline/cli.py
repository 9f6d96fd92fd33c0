"""Command-line interface for the normalization pipeline."""

import argparse
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv

from pipeline.config import CSV_EXPORT_PATH, RAW_DATA_PATH, REPORT_PATH, SNAPSHOT_PATH
from pipeline.errors import CatalogError, PipelineInputError
from pipeline.logging_config import setup_logging
from pipeline.models import CanonicalRecord
from pipeline.quality_gates import evaluate_quality_gates, log_gate_results
from pipeline.runner import run_pipeline_from_files
from pipeline.store import JsonReportSink, JsonSnapshotStore

__all__ = ["main", "parse_args", "show_stats", "check_gates"]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Hoist catalog normalization pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  # Process the raw database into a snapshot and quality report
  python -m pipeline.cli

  # Custom input/output, plus CSV export
  python -m pipeline.cli --input data/raw.json --output data/processed/out.json --export-csv

  # Show the last quality report
  python -m pipeline.cli --stats

  # Re-check quality gates on the current snapshot, failing on violations
  python -m pipeline.cli --check-gates --strict

Default CSV export path: {CSV_EXPORT_PATH}
        """,
    )

    # Paths
    parser.add_argument(
        "--input",
        default=RAW_DATA_PATH,
        help=f"Raw database JSON (default: {RAW_DATA_PATH})",
    )
    parser.add_argument(
        "--output",
        default=SNAPSHOT_PATH,
        help=f"Processed snapshot JSON (default: {SNAPSHOT_PATH})",
    )
    parser.add_argument(
        "--report",
        default=REPORT_PATH,
        help=f"Data quality report JSON (default: {REPORT_PATH})",
    )
    parser.add_argument(
        "--export-csv",
        nargs="?",
        const=CSV_EXPORT_PATH,
        metavar="PATH",
        help="Also export the processed snapshot to CSV",
    )

    # Info commands
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Show the last quality report and exit",
    )
    parser.add_argument(
        "--check-gates",
        action="store_true",
        help="Evaluate quality gates on the current snapshot and exit",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 when quality gates fail",
    )

    # Logging
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console log level (default: INFO)",
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Don't write JSONL log files",
    )

    return parser.parse_args(argv)


def show_stats(report_path: str) -> int:
    """Print a summary of the last quality report."""
    report = JsonReportSink(report_path).read()
    if report is None:
        print(f"No report found at {report_path}. Run the pipeline first.")
        return 1

    print(f"\n{'='*50}")
    print(f"Report: {report_path}")
    print(f"{'='*50}")
    print(f"\nTotal records:     {report.get('totalRecords', 0)}")
    print(f"Processed records: {report.get('processedRecords', 0)}")
    print(f"Skipped records:   {report.get('skippedRecords', 0)}")

    dedupe = report.get("deduplication") or {}
    if dedupe:
        print(f"Duplicates merged: {dedupe.get('duplicatesRemoved', 0)}"
              f" ({dedupe.get('conflicts', 0)} conflicts)")

    print("\nRecords by manufacturer:")
    for manufacturer, count in (report.get("manufacturerStats") or {}).items():
        print(f"  {manufacturer}: {count}")

    print("\nCapacity distribution:")
    for bucket, count in (report.get("capacityDistribution") or {}).items():
        print(f"  {bucket}: {count}")

    gates = report.get("qualityGates") or {}
    if gates:
        print("\nQuality gates:")
        for gate in gates.get("gates", []):
            status = "✓" if gate.get("passed") else "✗"
            print(f"  {status} {gate.get('name')}: {gate.get('actual')} ({gate.get('message')})")
        print(f"\n{gates.get('summary', '')}")

    print()
    return 0


def check_gates(snapshot_path: str, strict: bool = False) -> int:
    """Evaluate quality gates on the persisted snapshot."""
    entries = JsonSnapshotStore(snapshot_path).load()
    records = [CanonicalRecord.from_dict(e) for e in entries if isinstance(e, dict)]
    evaluation = evaluate_quality_gates(records)
    log_gate_results(evaluation)
    print(evaluation.summary)
    if strict and not evaluation.passed:
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI. Returns the process exit status."""
    load_dotenv()
    args = parse_args(argv)
    setup_logging(
        level=getattr(logging, args.log_level),
        log_to_file=not args.no_log_file,
    )

    try:
        if args.stats:
            return show_stats(args.report)

        if args.check_gates:
            return check_gates(args.output, strict=args.strict)

        result = run_pipeline_from_files(
            input_path=args.input,
            output_path=args.output,
            report_path=args.report,
            csv_path=args.export_csv,
        )
    except PipelineInputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except CatalogError as e:
        print(f"Storage error: {e}", file=sys.stderr)
        return 1

    report = result.report
    print(f"\nProcessed {report.processed_records} of {report.total_records} records"
          f" ({report.skipped_records} skipped)")
    print(f"Duplicates merged: {result.dedupe.duplicates_removed}")
    print(f"Snapshot saved to: {args.output}")
    print(f"Report saved to:   {args.report}")
    print(f"\n{report.quality_gates.summary}")

    if args.strict and not result.passed:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
