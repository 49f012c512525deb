#!/usr/bin/env python3
"""
LLKB Command Line

Runs discovery and maintenance operations against a knowledge-base
directory without starting the API server.

Usage:
    python llkb_cli.py discover PROJECT_ROOT [--llkb-dir DIR] [--threshold 0.7]
    python llkb_cli.py health [--llkb-dir DIR] [--json]
    python llkb_cli.py stats [--llkb-dir DIR] [--json]
    python llkb_cli.py prune [--llkb-dir DIR] [--retention-days 365] [--archive-lessons]
    python llkb_cli.py learn --type lesson --journey JRN-001 --id L001 --success
    python llkb_cli.py analytics [--llkb-dir DIR] [--refresh]

Examples:
    python llkb_cli.py discover ../my-app --skip-mining
    python llkb_cli.py learn --type pattern --journey JRN-002 --step "click save" --failure
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Get the backend directory path
SCRIPT_DIR = Path(__file__).parent.resolve()
BACKEND_DIR = SCRIPT_DIR.parent
sys.path.insert(0, str(BACKEND_DIR / "app"))

from llkb.analytics import get_analytics_summary, update_analytics  # noqa: E402
from llkb.config import get_settings  # noqa: E402
from llkb.health import (  # noqa: E402
    check_health,
    format_health_check,
    format_prune_result,
    format_stats,
    get_stats,
    prune,
)
from llkb.learning import format_learning_result, handle_learning_event  # noqa: E402
from llkb.models import HealthStatus  # noqa: E402
from llkb.pipeline import PipelineOptions, run_full_discovery_pipeline  # noqa: E402


def _print_json(data):
    print(json.dumps(data, indent=2, default=str))


def cmd_discover(args, llkb_dir: Path) -> int:
    settings = get_settings()
    options = PipelineOptions(
        confidence_threshold=args.threshold if args.threshold is not None else settings.confidence_threshold,
        max_patterns=args.max_patterns or settings.max_patterns,
        max_age_days=settings.max_age_days,
        skip_mining_modules=args.skip_mining,
        update_learned=args.update_learned,
    )
    result = run_full_discovery_pipeline(args.project_root, llkb_dir, options)
    if args.json:
        _print_json(result.to_dict())
        return 0 if result.success else 1

    stats = result.stats
    print(f"\nDiscovery {'completed' if result.success else 'FAILED'} in {stats['durationMs']}ms")
    print(f"  Candidates: {stats['totalBeforeQC']}")
    print(f"  Kept:       {stats['totalAfterQC']}")
    for source, count in stats["patternSources"].items():
        print(f"    {source:14} {count}")
    for warning in result.warnings:
        print(f"  Warning: {warning}")
    for error in result.errors:
        print(f"  Error: {error}")
    return 0 if result.success else 1


def cmd_health(args, llkb_dir: Path) -> int:
    result = check_health(llkb_dir)
    if args.json:
        _print_json(result.to_dict())
    else:
        print(format_health_check(result))
    return 1 if result.status == HealthStatus.ERROR.value else 0


def cmd_stats(args, llkb_dir: Path) -> int:
    stats = get_stats(llkb_dir)
    if args.json:
        _print_json(stats)
    else:
        print(format_stats(stats))
    return 0


def cmd_prune(args, llkb_dir: Path) -> int:
    result = prune(
        llkb_dir,
        history_retention_days=args.retention_days or get_settings().history_retention_days,
        archive_inactive_lessons=args.archive_lessons,
        archive_inactive_components=args.archive_components,
        inactive_days=args.inactive_days,
    )
    if args.json:
        _print_json(result.to_dict())
    else:
        print(format_prune_result(result))
    return 1 if result.errors else 0


def cmd_learn(args, llkb_dir: Path) -> int:
    result = handle_learning_event(
        llkb_dir,
        learning_type=args.type,
        journey_id=args.journey,
        succeeded=args.success,
        entity_id=args.id,
        prompt=args.prompt,
        context=args.context,
        step_text=args.step,
        selector_strategy=args.selector_strategy,
        selector_value=args.selector,
    )
    if args.json:
        _print_json(result.to_dict())
    else:
        print(format_learning_result(result))
    return 0 if result.success else 1


def cmd_analytics(args, llkb_dir: Path) -> int:
    if args.refresh and update_analytics(llkb_dir) is None:
        print("Failed to update analytics: lessons or components unavailable")
        return 1
    print(get_analytics_summary(llkb_dir))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="LLKB knowledge-base operations")
    parser.add_argument("--llkb-dir", help="Knowledge-base directory (default: LLKB_ROOT)")
    parser.add_argument("--json", action="store_true", help="Print machine-readable JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    discover = subparsers.add_parser("discover", help="Run the full discovery pipeline")
    discover.add_argument("project_root", help="Root of the application to analyze")
    discover.add_argument("--threshold", type=float, help="Minimum pattern confidence")
    discover.add_argument("--max-patterns", type=int, help="Cap on persisted patterns")
    discover.add_argument("--skip-mining", action="store_true",
                          help="Skip i18n, analytics and feature-flag mining")
    discover.add_argument("--update-learned", action="store_true",
                          help="Also merge results into learned-patterns.json")
    discover.set_defaults(handler=cmd_discover)

    health = subparsers.add_parser("health", help="Check knowledge-base integrity")
    health.set_defaults(handler=cmd_health)

    stats = subparsers.add_parser("stats", help="Show knowledge-base statistics")
    stats.set_defaults(handler=cmd_stats)

    prune_parser = subparsers.add_parser("prune", help="Delete old history and archive inactive items")
    prune_parser.add_argument("--retention-days", type=int, help="History retention in days")
    prune_parser.add_argument("--archive-lessons", action="store_true", help="Archive inactive lessons")
    prune_parser.add_argument("--archive-components", action="store_true", help="Archive inactive components")
    prune_parser.add_argument("--inactive-days", type=int, default=180, help="Inactivity window in days")
    prune_parser.set_defaults(handler=cmd_prune)

    learn = subparsers.add_parser("learn", help="Record a test outcome")
    learn.add_argument("--type", required=True, choices=["pattern", "component", "lesson"])
    learn.add_argument("--journey", required=True, help="Journey id the outcome came from")
    learn.add_argument("--id", help="Component or lesson id")
    outcome = learn.add_mutually_exclusive_group(required=True)
    outcome.add_argument("--success", dest="success", action="store_true")
    outcome.add_argument("--failure", dest="success", action="store_false")
    learn.add_argument("--prompt", help="Prompt that produced the test")
    learn.add_argument("--context", help="Free-form note")
    learn.add_argument("--step", help="Step text (pattern learning)")
    learn.add_argument("--selector", help="Selector value (pattern learning)")
    learn.add_argument("--selector-strategy", help="Selector strategy (pattern learning)")
    learn.set_defaults(handler=cmd_learn)

    analytics = subparsers.add_parser("analytics", help="Show analytics summary")
    analytics.add_argument("--refresh", action="store_true", help="Recompute before showing")
    analytics.set_defaults(handler=cmd_analytics)

    return parser


def main(argv=None):
    """Main entry point."""
    args = build_parser().parse_args(argv)

    # Configure logging
    level = logging.DEBUG if args.verbose else getattr(logging, get_settings().log_level, logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    llkb_dir = Path(args.llkb_dir) if args.llkb_dir else get_settings().root
    sys.exit(args.handler(args, llkb_dir))


if __name__ == "__main__":
    main()
