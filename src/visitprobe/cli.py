"""Command-line interface for the visit probe."""

import asyncio
import subprocess
import sys
from typing import Optional

from visitprobe.browser_config import DEBUG_CONFIG, MARKETPLACE_CONFIG
from visitprobe.classifier import POLICIES
from visitprobe.config import ProbeConfig
from visitprobe.exceptions import ProbeError
from visitprobe.logging_config import setup_logging
from visitprobe.models import RunReport
from visitprobe.reporter import ReportWriter, render_summary
from visitprobe.runner import run_probe


def build_config(args) -> ProbeConfig:
    """Environment first, then an optional config file, then CLI flags."""
    config = ProbeConfig.from_env()
    if getattr(args, "config", None):
        config = ProbeConfig.from_file(args.config, base=config)
    return config.with_overrides(
        urls_path=args.urls,
        artifact_dir=args.artifacts,
        max_attempts=args.max_attempts,
        success_policy=args.policy,
        min_body_length=args.min_body_length,
        capture_failure_screenshots=True if args.screenshots else None,
    )


def run_command(args) -> int:
    """Visit every URL in the list and write the report."""
    try:
        config = build_config(args)
    except (ProbeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    browser_config = DEBUG_CONFIG if args.headed else MARKETPLACE_CONFIG

    try:
        result = asyncio.run(run_probe(config, browser_config=browser_config))
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        return 1

    if result.auth_error:
        print(f"Authentication failed: {result.auth_error}", file=sys.stderr)
        return 1

    print("SUMMARY\n" + render_summary(result.report))
    return 0


def report_command(args) -> int:
    """Re-render the summary of an earlier run from its JSON log."""
    writer = ReportWriter(args.artifacts or "artifacts")
    try:
        outcomes = writer.load_outcomes()
    except FileNotFoundError:
        print(f"No visit log found at {writer.json_path}")
        return 1

    print(render_summary(RunReport(outcomes=outcomes)), end="")
    return 0


def install_browser_command(args) -> int:
    """Run playwright install to download browser binaries."""
    print(f"Running 'playwright install {args.browser}'...")
    try:
        result = subprocess.run(
            [sys.executable, "-m", "playwright", "install", args.browser],
            check=True,
            capture_output=True,
            text=True
        )
    except subprocess.CalledProcessError as e:
        print(f"Error installing {args.browser} for Playwright: {e}", file=sys.stderr)
        if e.stderr:
            print(e.stderr, file=sys.stderr)
        print(
            "Please run the following command manually:\n"
            f"  python -m playwright install {args.browser}",
            file=sys.stderr
        )
        return 1

    if result.stdout:
        print(result.stdout)
    print(f"{args.browser} browser installed successfully.")
    return 0


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Visit Probe - check that storefront pages load in a real browser"
    )

    # Global flags (before subcommands)
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        help="Write logs to file in addition to console",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command parser
    run_parser = subparsers.add_parser(
        "run", help="Visit every URL in the list and write the report."
    )
    run_parser.add_argument(
        "--urls", "-u",
        help="URL list file with a 'url' header (default: urls.csv)",
    )
    run_parser.add_argument(
        "--artifacts", "-a",
        help="Directory for report artifacts (default: artifacts)",
    )
    run_parser.add_argument(
        "--config", "-c",
        help="JSON or YAML file with probe settings",
    )
    run_parser.add_argument(
        "--max-attempts",
        type=int,
        help="Attempts per URL before it is reported as failed (default: 4)",
    )
    run_parser.add_argument(
        "--policy",
        choices=sorted(POLICIES),
        help="Success rule (default: permissive)",
    )
    run_parser.add_argument(
        "--min-body-length",
        type=int,
        help="Rendered text length that counts as real content (default: 1200)",
    )
    run_parser.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser window (useful for completing a second factor)",
    )
    run_parser.add_argument(
        "--screenshots",
        action="store_true",
        help="Save a screenshot of every URL that ends unsuccessful",
    )
    run_parser.set_defaults(func=run_command)

    # Report command parser
    report_parser = subparsers.add_parser(
        "report", help="Print the summary of an earlier run."
    )
    report_parser.add_argument(
        "--artifacts", "-a",
        help="Directory holding visit_log.json (default: artifacts)",
    )
    report_parser.set_defaults(func=report_command)

    # Browser install command parser
    install_parser = subparsers.add_parser(
        "install-browser", help="Download the browser binaries Playwright needs."
    )
    install_parser.add_argument(
        "--browser",
        choices=["chromium", "firefox", "webkit"],
        default="chromium",
    )
    install_parser.set_defaults(func=install_browser_command)

    args = parser.parse_args(argv)

    setup_logging(
        level=args.log_level,
        log_file=getattr(args, 'log_file', None),
    )

    if hasattr(args, "func"):
        return args.func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
