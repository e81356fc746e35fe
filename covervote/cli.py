"""Command-line interface for the cover validation service."""

import sys
import json
import argparse
from pathlib import Path
from typing import Any, List

from .config import ConfigManager
from .engine import Engine
from .errors import CoverVoteError
from .logging_config import setup_logging


def load_songs_file(path: str) -> List[Any]:
    """Load a scraped batch: either {"songs": [...]} or a bare list."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("songs")
    return data


def _engine(args) -> Engine:
    manager = ConfigManager(args.config)
    manager.validate()
    config = manager.config
    setup_logging(format="text", level="DEBUG" if args.verbose else "WARNING")
    if config.store.backend == "memory":
        print("⚠️  Using the in-memory store; nothing will be persisted (set COVERVOTE_DB_PATH)")
    return Engine.from_config(config)


def serve(args):
    """Run the HTTP API."""
    from .api.server import main as run_server

    run_server(config_path=args.config, reload=args.reload)
    return 0


def sync_file(args):
    """Merge a scraped JSON file into the store."""
    print(f"Syncing songs from: {args.file}")

    try:
        songs = load_songs_file(args.file)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error loading songs: {e}")
        return 1

    engine = _engine(args)
    try:
        result = engine.sync.sync(songs)
    finally:
        engine.close()

    print(f"✅ {result.message}")
    for error in result.errors:
        print(f"   ⚠️  entry {error['index']} ({error['original_id']}): {error['error']}")

    if args.output:
        Path(args.output).write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")
        print(f"💾 Result saved to: {args.output}")

    return 0


def reviewers(args):
    """List or add reviewers."""
    engine = _engine(args)
    try:
        if args.action == "add":
            added = engine.repositories.reviewers.ensure(args.names)
            for reviewer in added:
                print(f"➕ {reviewer.name}")
            skipped = len(args.names) - len(added)
            if skipped:
                print(f"{skipped} already known")
        else:
            for name in engine.repositories.reviewers.names():
                print(name)
    finally:
        engine.close()
    return 0


def stats(args):
    """Print analytics as JSON."""
    engine = _engine(args)
    try:
        if args.user:
            result = engine.analytics.reviewer_stats(args.user)
        else:
            result = engine.analytics.global_stats()
    finally:
        engine.close()

    print(json.dumps(result.model_dump(mode="json"), indent=2))
    return 0


def generate_config(args):
    """Write a configuration template."""
    manager = ConfigManager(load_env_file=False)
    if args.output:
        manager.save_template(args.output)
        print(f"Configuration template saved to: {args.output}")
    else:
        print(json.dumps(manager.DEFAULT_CONFIG, indent=2))
    return 0


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Collaborative cover validation service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  covervote serve -c config.json
  covervote sync scraped_songs.json
  covervote reviewers add Ann Bob
  covervote stats --user Ann
        """,
    )
    parser.add_argument("-c", "--config", help="Path to configuration file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    sync_parser = subparsers.add_parser("sync", help="Merge a scraped JSON batch")
    sync_parser.add_argument("file", help="JSON file with {\"songs\": [...]} or a list of songs")
    sync_parser.add_argument("-o", "--output", help="Save the sync result to file")

    reviewers_parser = subparsers.add_parser("reviewers", help="List or add reviewers")
    reviewers_parser.add_argument("action", choices=["list", "add"], help="Action")
    reviewers_parser.add_argument("names", nargs="*", help="Reviewer names to add")

    stats_parser = subparsers.add_parser("stats", help="Print analytics")
    stats_parser.add_argument("--user", help="Reviewer bucket to scope the statistics to")

    config_parser = subparsers.add_parser("generate-config", help="Generate configuration template")
    config_parser.add_argument("-o", "--output", help="Save to file (default: print to stdout)")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    commands = {
        "serve": serve,
        "sync": sync_file,
        "reviewers": reviewers,
        "stats": stats,
        "generate-config": generate_config,
    }

    try:
        return commands[args.command](args)
    except CoverVoteError as e:
        print(f"Error: {e.message}")
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
