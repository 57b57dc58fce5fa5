#!/usr/bin/env python3
"""
Docu Assistant - slash-command document authoring with conversational agents.

Development entry point; the installed console script is ``docu-assistant``.
"""

import sys
from pathlib import Path

# Add src to path for development
src_path = Path(__file__).parent / "src"
if src_path.exists():
    sys.path.insert(0, str(src_path))

from docu_assistant.main import main


if __name__ == "__main__":
    sys.exit(main())
