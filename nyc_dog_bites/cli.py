"""
Command line entry point for the NYC dog bite report.
"""

import argparse
import logging
import sys
from pathlib import Path

from . import pipeline
from .config import PipelineSettings
from .fetch import FetchError


logger = logging.getLogger(__name__)


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--limit', type=int, default=None,
                        help='Maximum number of records to request from the API')
    parser.add_argument('--zip-reference', type=Path, default=None,
                        help='Path to the ZIP code reference CSV')
    parser.add_argument('--age-lookup', type=Path, default=None,
                        help='Path to the curated age lookup spreadsheet')
    parser.add_argument('--verbose', action='store_true',
                        help='Enable debug logging')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='nyc-dog-bites', description="NYC dog bite report")
    subparsers = parser.add_subparsers(dest='command', required=True)

    run = subparsers.add_parser('run', help='Fetch, clean and report on the dog bite data')
    _add_common_arguments(run)
    run.add_argument('--output-dir', type=Path, default=None,
                     help='Directory for the dataset, tables and figures')
    run.add_argument('--borough-boundaries', type=Path, default=None,
                     help='Path to the borough boundary file')
    run.add_argument('--zip-boundaries', type=Path, default=None,
                     help='Path to the ZIP code boundary file')
    run.add_argument('--zip-boundary-key', type=str, default=None,
                     help='ZIP code column in the ZIP boundary file')
    run.add_argument('--skip-report', action='store_true',
                     help='Only write the incident dataset and run metrics')

    draft = subparsers.add_parser('draft-age-lookup',
                                  help='Draft lookup entries for unresolved age text')
    _add_common_arguments(draft)
    draft.add_argument('--output', type=Path, required=True,
                       help='Path of the draft spreadsheet to write')

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = PipelineSettings.from_env().with_overrides(
        record_limit=args.limit,
        zip_reference_path=args.zip_reference,
        age_lookup_path=args.age_lookup,
        output_dir=getattr(args, 'output_dir', None),
        borough_boundaries_path=getattr(args, 'borough_boundaries', None),
        zip_boundaries_path=getattr(args, 'zip_boundaries', None),
        zip_boundary_key=getattr(args, 'zip_boundary_key', None),
    )

    print("=" * 60)
    print("NYC DOG BITE REPORT")
    print("=" * 60)
    print(f"Command: {args.command}")
    print(f"Dataset: {settings.api_endpoint}/{settings.dataset_id}")
    print(f"Record limit: {settings.record_limit:,}")

    try:
        if args.command == 'run':
            artifacts = pipeline.run_report(settings, skip_report=args.skip_report)
            print("\n✓ REPORT COMPLETE")
            for name, path in artifacts.items():
                print(f"  {name}: {path}")
        elif args.command == 'draft-age-lookup':
            df_draft = pipeline.draft_missing_ages(settings, args.output)
            print(f"\n✓ Wrote {len(df_draft):,} draft age entries to {args.output}")
    except FetchError as e:
        logger.error("Fetch failed: %s", e)
        return 1
    except (FileNotFoundError, ValueError) as e:
        logger.error("Invalid input: %s", e)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
