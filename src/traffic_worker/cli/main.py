"""Main CLI entry point for the traffic worker."""

import argparse
import sys

from .commands.run import setup_run_commands
from .commands.status import setup_status_commands


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="traffic-worker", description="Traffic camera vehicle counting - job cycle worker"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    setup_run_commands(subparsers)
    setup_status_commands(subparsers)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    # Execute command
    if hasattr(args, "func"):
        return args.func(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
