"""
Command-line interface for peer-dependency-checker.
"""

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from . import __version__
from .config import OUTPUT_FORMATS, PACKAGE_MANAGERS, load_config
from .logger import setup_logger
from .models import PackageSpec, SetupOptions
from .peer_check import run_analyze, run_check, run_precheck
from .project_setup import apply_setup
from .report import render_setup
from .upgrade_check import run_scan


QUICK_COMMANDS = """Quick commands:
  pdc scan              Analyze your project
  pdc check react@19    Test specific upgrade
  pdc analyze           Deep analysis

Run "pdc --help" for all commands"""

CHECK_USAGE = """Please specify packages to check. Example:
  pdc check react@19 react-dom@19"""

SIMULATE_USAGE = """--simulate needs the full scan; drop --quick. Example:
  pdc scan --simulate"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdc",
        description="Smart dependency compatibility checker"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--project-dir",
        default=".",
        help="Project root containing package.json. Default: current directory"
    )
    parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default=None,
        help="Output format. Overrides outputFormat from .pdcrc.json"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log debug details to stderr"
    )

    subparsers = parser.add_subparsers(dest="command")

    scan = subparsers.add_parser("scan", help="Analyze current project for upgrade opportunities")
    scan.add_argument("--quick", action="store_true", help="Print a one-line summary only")
    scan.add_argument(
        "--simulate",
        action="store_true",
        help="Dry-run an install against the latest versions (npm only)"
    )

    analyze = subparsers.add_parser("analyze", help="Deep peer dependency analysis")
    analyze.add_argument("--brief", action="store_true", help="Print a one-line verdict")

    check = subparsers.add_parser("check", help="Test specific package upgrades")
    check.add_argument("packages", nargs="*", help="Packages to check, e.g. react@19")

    precheck = subparsers.add_parser(
        "precheck",
        help="Check packages against this project before installing them"
    )
    precheck.add_argument("packages", nargs="*", help="Packages to check, e.g. react@19")

    setup = subparsers.add_parser("setup", help="Add pdc scripts and config to this project")
    setup.add_argument("--pm", choices=PACKAGE_MANAGERS, default=None, help="Package manager to use")
    setup.add_argument("--skip-hooks", action="store_true", help="Do not add preinstall/postinstall")
    setup.add_argument("--skip-config", action="store_true", help="Do not create .pdcrc.json")
    setup.add_argument("--dry-run", action="store_true", help="Show what would change")

    return parser


def main(argv=None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        print(QUICK_COMMANDS)
        return 0

    setup_logger(args.verbose)
    project_dir = Path(args.project_dir)

    try:
        config = load_config(project_dir)
        if args.format:
            config = replace(config, output_format=args.format)

        if args.command == "scan":
            if args.quick and args.simulate:
                print(SIMULATE_USAGE)
                return 0
            output = run_scan(project_dir, config, quick=args.quick, simulate=args.simulate)
        elif args.command == "analyze":
            output = run_analyze(project_dir, config, brief=args.brief)
        elif args.command == "check":
            if not args.packages:
                print(CHECK_USAGE)
                return 0
            specs = [PackageSpec.parse(value) for value in args.packages]
            output = run_check(specs, project_dir, config)
        elif args.command == "precheck":
            specs = [PackageSpec.parse(value) for value in args.packages]
            output = run_precheck(specs, project_dir, config)
        else:
            options = SetupOptions(
                package_manager=args.pm,
                skip_hooks=args.skip_hooks,
                skip_config=args.skip_config,
                dry_run=args.dry_run,
            )
            output = render_setup(apply_setup(project_dir, options), config.output_format)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
