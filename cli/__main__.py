"""
CLI Main Entry Point

Run this module to provision the machine:
    python -m cli                 # full setup
    python -m cli setup --dry-run
    python -m cli verify --mcp
    python -m cli render --write
    python -m cli steps
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv
from cli.main import run_cli


def configure_logging(level: int = logging.INFO) -> None:
    """Configure logging for the CLI."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def load_env() -> None:
    """Load environment variables from .env file."""
    load_dotenv()


def _step_list(value: str) -> List[str]:
    return [name.strip() for name in value.split(",") if name.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="buildit-setup",
        description="Provision a WSL machine for the buildit + ibah stack.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="setup",
        choices=["setup", "verify", "render", "steps"],
    )
    parser.add_argument("--dry-run", action="store_true", help="log commands and writes without performing them")
    parser.add_argument("--only", type=_step_list, default=None, help="comma-separated steps to run")
    parser.add_argument("--skip", type=_step_list, default=None, help="comma-separated steps to leave out")
    parser.add_argument("--mcp", action="store_true", help="verify: also start the ibah MCP server and list its tools")
    parser.add_argument("--write", action="store_true", help="render: write the config files")
    parser.add_argument("--interactive", action="store_true", help="start an interactive session")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    load_env()
    return asyncio.run(
        run_cli(
            command=args.command,
            dry_run=args.dry_run,
            only=args.only,
            skip=args.skip,
            include_mcp=args.mcp,
            write=args.write,
            interactive=args.interactive,
        )
    )


if __name__ == '__main__':
    sys.exit(main())
