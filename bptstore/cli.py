"""Command-line front end: runs a script of insert, delete and find commands."""

from __future__ import annotations

import argparse
import sys
from typing import Iterator, Optional, Sequence, TextIO

from .tree import DEFAULT_ORDER, BPlusTree


def _next_token(tokens: Iterator[str]) -> str:
    try:
        return next(tokens)
    except StopIteration:
        raise ValueError("unexpected end of input") from None


def run(tree: BPlusTree, source: TextIO, out: TextIO) -> None:
    """Execute a command script read from ``source`` and write results to ``out``.

    The script starts with the number of commands.  Commands are
    ``insert KEY VALUE``, ``delete KEY VALUE`` and ``find KEY``; only the
    first letter of the command word matters.  Each ``find`` writes its values
    each followed by a space, or ``null``, and then a newline.
    """
    tokens = iter(source.read().split())
    count = int(_next_token(tokens))
    for _ in range(count):
        opt = _next_token(tokens)
        key = _next_token(tokens)
        if opt.startswith("i"):
            tree.insert(key, int(_next_token(tokens)))
        elif opt.startswith("d"):
            tree.delete(key, int(_next_token(tokens)))
        elif opt.startswith("f"):
            values = tree.find(key)
            out.write("".join(f"{v} " for v in values) if values else "null")
            out.write("\n")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run a key-value command script.")
    parser.add_argument("-d", "--directory", default=".", help="where the data files live")
    parser.add_argument("--order", type=int, default=DEFAULT_ORDER, help="keys per node")
    args = parser.parse_args(argv)
    with BPlusTree(args.directory, order=args.order) as tree:
        run(tree, sys.stdin, sys.stdout)
    return 0