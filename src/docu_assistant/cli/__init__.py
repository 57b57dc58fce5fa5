"""
CLI module for Docu Assistant.

Argument parsing lives in ``commands``; running the parsed command lives in
``handlers``.
"""

from .commands import create_parser, parse_args
from .handlers import handle_cli_command, render_reply

__all__ = ["create_parser", "parse_args", "handle_cli_command", "render_reply"]
