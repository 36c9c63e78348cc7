#!/usr/bin/env python3
"""
Command line entry point.

Usage:
    biz-graph batch --config configs/chart_test_data.yaml --url https://...
    biz-graph batch --dry-run --seed 42
    biz-graph workflow --url https://...

The deployment URL may also come from CONVEX_URL (and an identity token
from CONVEX_AUTH_TOKEN). --dry-run runs against an in-memory backend.
"""

import argparse
import logging
import sys

from .api.base import DataAPI
from .api.convex import ConvexDataAPI
from .api.memory import InMemoryDataAPI
from .batch import KIND_LABELS, BatchGenerator
from .config import GenerationConfig
from .context import GenerationResult
from .errors import ConfigError
from .workflow import WorkflowRunner


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="biz-graph",
        description="Populate a CRM backend with synthetic test entities",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    target = argparse.ArgumentParser(add_help=False)
    target.add_argument("--url", help="Convex deployment URL (default: $CONVEX_URL)")
    target.add_argument(
        "--dry-run",
        action="store_true",
        help="Run against an in-memory backend instead of a deployment",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    batch = sub.add_parser("batch", parents=[target], help="Generate chart test data")
    batch.add_argument("--config", help="YAML generation config")
    batch.add_argument("--seed", type=int, help="Random seed (overrides config)")

    sub.add_parser("workflow", parents=[target], help="Run the lead-to-invoice workflow")
    return parser


def make_api(args: argparse.Namespace) -> DataAPI:
    if args.dry_run:
        return InMemoryDataAPI()
    return ConvexDataAPI.from_env(args.url)


def load_config(args: argparse.Namespace) -> GenerationConfig:
    config = GenerationConfig.from_yaml(args.config) if args.config else GenerationConfig()
    if args.seed is not None:
        config.seed = args.seed
    return config


def print_result(title: str, result: GenerationResult, summary: str) -> None:
    print("=" * 60)
    print(title)
    print("=" * 60)
    print(summary)
    if result["warnings"]:
        print()
        print(f"Warnings ({len(result['warnings'])}):")
        for warning in result["warnings"]:
            print(f"  - {warning}")
    print()
    if result["success"]:
        print("Completed successfully")
    else:
        print(f"Completed with {len(result['errors'])} error(s):")
        for error in result["errors"]:
            print(f"  - {error}")


def run_batch(args: argparse.Namespace) -> GenerationResult:
    config = load_config(args)
    generator = BatchGenerator(make_api(args), config)
    result = generator.generate_chart_data()
    created = ", ".join(
        f"{len(result['results'][kind])} {label}" for kind, label in KIND_LABELS.items()
    )
    print_result("Chart Test Data Generation", result, f"Created: {created}")
    return result


def run_workflow(args: argparse.Namespace) -> GenerationResult:
    runner = WorkflowRunner(make_api(args))
    result = runner.run_complete_workflow()
    lines = [
        f"  {stage:<11} {record.get('id')} ({record.get('status', '-')})"
        for stage, record in result["results"].items()
    ]
    print_result("Lead-to-Invoice Workflow", result, "\n".join(["Stages:", *lines]))
    return result


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "batch":
            result = run_batch(args)
        else:
            result = run_workflow(args)
    except (ConfigError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    return 0 if result["success"] else 1


if __name__ == "__main__":
    sys.exit(main())
