import asyncio
import os
import sys

from algobind.algobind_registry import AlgorithmRegistry
from algobind.algobind_printer import Printer
from algobind.algobind_serialize import serialize

USAGE = "usage: algobind.py [--json|--yaml] <catalogue-url-or-path> [prefix]"


def select_names(registry: AlgorithmRegistry, prefix: str | None) -> list[str]:
    """Catalogue names under `prefix` (exact `prefix.name` match), sorted."""
    names = sorted(registry.all_signatures())
    if prefix is None:
        return names
    return [n for n in names if n.split(".")[:-1] == prefix.split(".")]


async def main(argv: list[str]) -> int:
    """Print the call form of every catalogue function, or dump it as json/yaml."""
    fmt = None
    positional = []
    for arg in argv:
        if arg in ("--json", "--yaml"):
            fmt = arg[2:]
        elif arg.startswith("-"):
            print(USAGE, file=sys.stderr)
            return 2
        else:
            positional.append(arg)

    locator = positional[0] if positional else os.environ.get("ALGOBIND_CATALOGUE")
    if not locator:
        print(USAGE, file=sys.stderr)
        return 2
    prefix = positional[1] if len(positional) > 1 else None

    registry = AlgorithmRegistry(locator)
    try:
        await registry.apopulate()
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    names = select_names(registry, prefix)
    signatures = registry.all_signatures()
    if fmt:
        print(serialize({n: signatures[n].to_record() for n in names}, fmt=fmt))
        return 0

    printer = Printer()
    for n in names:
        print(printer.format_signature(signatures[n]))
        print()
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(asyncio.run(main(sys.argv[1:])))
    except KeyboardInterrupt:
        print("\nExiting.")
