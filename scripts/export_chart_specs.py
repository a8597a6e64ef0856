#!/usr/bin/env python3
"""
Build every chart specification from the financial risk CSV and write them as JSON.

Usage:
    python scripts/export_chart_specs.py [--data PATH] [--width W] [--height H] [--output FILE] [--verbose]

Example:
    python scripts/export_chart_specs.py --data data/financial_risk_assessment.csv -o charts.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import get_settings
from src.pipeline import (
    PipelineConfig,
    export_results_to_dict,
    format_pipeline_summary,
    run_pipeline,
)


def main() -> int:
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="Export chart specifications for the financial risk dashboard"
    )
    parser.add_argument(
        "--data",
        type=str,
        default=str(settings.data_path),
        help=f"Path to the source CSV (default: {settings.data_path})",
    )
    parser.add_argument(
        "--width",
        type=int,
        default=settings.default_width,
        help=f"Chart width in pixels (default: {settings.default_width})",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=settings.default_height,
        help=f"Chart height in pixels (default: {settings.default_height})",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        help="Output file for the specs JSON (default: stdout)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log each pipeline stage",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = PipelineConfig(
        data_path=Path(args.data),
        width=args.width,
        height=args.height,
        verbose=args.verbose,
    )
    result = run_pipeline(config)

    print(format_pipeline_summary(result), file=sys.stderr)

    payload = json.dumps(export_results_to_dict(result), indent=2)
    if args.output:
        Path(args.output).write_text(payload)
        print(f"Wrote {len(result.specs)} chart specs to {args.output}", file=sys.stderr)
    else:
        print(payload)

    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
