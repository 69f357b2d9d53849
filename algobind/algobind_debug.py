import os
import sys


def dbg(*parts):
    """Print a debug line to stderr when ALGOBIND_DEBUG is set."""
    if os.environ.get("ALGOBIND_DEBUG"):
        try:
            print("[DBG]", *parts, file=sys.stderr)
        except Exception:
            pass
