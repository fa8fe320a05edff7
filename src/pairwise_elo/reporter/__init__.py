"""Reporter module.

Provides output formatting for cohort standings:
- TextReporter: Human-readable text output
"""

from .text import TextReporter, print_leaderboard

__all__ = [
    "TextReporter",
    "print_leaderboard",
]
