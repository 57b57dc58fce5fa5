"""
Rebuild a full command line when a host passes the command name and its
arguments separately (``command="new"``, ``prompt='"Spec" --template prd'``).
"""

import re
from typing import Callable, Optional

_MENTION_COMMAND = re.compile(r"^@[\w-]+\s+")


def derive_command_input(
    prompt: str,
    command: Optional[str],
    is_known_command: Callable[[str], bool],
    prefix: str = "/",
) -> str:
    trimmed_prompt = (prompt or "").strip()

    if trimmed_prompt.startswith(prefix):
        return trimmed_prompt
    mention = _MENTION_COMMAND.match(trimmed_prompt)
    if mention and trimmed_prompt[mention.end():].startswith(prefix):
        return trimmed_prompt

    raw_command = (command or "").strip()
    if raw_command.startswith(prefix):
        raw_command = raw_command[len(prefix):]
    if not raw_command:
        return trimmed_prompt

    candidate = f"{prefix}{raw_command}"
    if not is_known_command(candidate):
        return trimmed_prompt

    return f"{candidate} {trimmed_prompt}".strip()
