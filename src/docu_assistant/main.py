"""
Main entry point for the Docu Assistant CLI application.

Called from the installed ``docu-assistant`` console script or with
``python -m docu_assistant.main``.
"""

import sys

from .cli import handle_cli_command, parse_args


def main(argv=None) -> int:
    """Parse arguments and run the CLI, returning the exit code."""
    try:
        return handle_cli_command(parse_args(argv))
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
        return 0


if __name__ == "__main__":
    sys.exit(main())
