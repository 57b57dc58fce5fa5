"""
Command-line argument parser for Docu Assistant.
"""

import argparse

from .. import __version__


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="docu-assistant",
        description="Docu Assistant - write structured documents with slash-commands and conversational agents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  docu-assistant                                        # Interactive session
  docu-assistant --prompt '/new "Checkout" --template prd'
  docu-assistant --list-templates                       # Show document templates
  docu-assistant --workspace ./project --state-file ./state.json
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Docu Assistant {__version__}"
    )

    parser.add_argument(
        "--config",
        type=str,
        metavar="PATH",
        help="Path to configuration file"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--prompt",
        type=str,
        metavar="TEXT",
        help="Process a single input (command or message) and exit"
    )

    parser.add_argument(
        "--command",
        type=str,
        metavar="NAME",
        help="Command to run with --prompt as its arguments, e.g. --command new --prompt '\"Checkout\" --template prd'"
    )

    parser.add_argument(
        "--workspace",
        type=str,
        metavar="DIR",
        help="Directory documents are read from and written to"
    )

    parser.add_argument(
        "--state-file",
        type=str,
        metavar="PATH",
        help="JSON file holding the auto-chat session state"
    )

    parser.add_argument(
        "--model",
        type=str,
        metavar="NAME",
        help="Specify which model to use"
    )

    listing = parser.add_mutually_exclusive_group()

    listing.add_argument(
        "--list-templates",
        action="store_true",
        help="List document templates and exit"
    )

    listing.add_argument(
        "--list-commands",
        action="store_true",
        help="List slash-commands and exit"
    )

    return parser


def parse_args(args=None):
    """Parse command line arguments."""
    parser = create_parser()
    return parser.parse_args(args)
