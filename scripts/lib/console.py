"""Progress and warning output for the wallet session tools."""

import sys


def log(scope: str, message: str) -> None:
    """Log a message to stderr with a scope prefix."""
    print(f"[{scope}] {message}", file=sys.stderr)
