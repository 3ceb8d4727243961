"""Generators of command scripts for exercising the key-value store."""

from __future__ import annotations

import argparse
import random
import sys
from typing import Iterable, List, Optional, Sequence, Set, Tuple

Command = Tuple  # ("insert", key, value) | ("delete", key, value) | ("find", key)

_RANGE = 100
_WARMUP = 50


def _random_pair(rng: random.Random) -> Tuple[int, int]:
    return rng.randint(1, _RANGE), rng.randint(1, _RANGE)


def _fresh_pair(rng: random.Random, used: Set[Tuple[int, int]]) -> Tuple[int, int]:
    if len(used) >= _RANGE * _RANGE:
        raise RuntimeError("every key/value pair is already in use")
    pair = _random_pair(rng)
    while pair in used:
        pair = _random_pair(rng)
    return pair


def shuffled_inserts(t: int, rng: random.Random) -> List[Command]:
    """Insert keys 1..t, each with its own value, in shuffled order."""
    order = list(range(1, t + 1))
    rng.shuffle(order)
    return [("insert", i, i) for i in order]


def insert_then_find(t: int) -> List[Command]:
    """Insert, look up, insert second values, look up again."""
    keys = range(1, t + 1)
    return (
        [("insert", i, i) for i in keys]
        + [("find", i) for i in keys]
        + [("insert", i, i + t) for i in keys]
        + [("find", i) for i in keys]
    )


def random_insert_find(t: int, rng: random.Random) -> List[Command]:
    """Random inserts of distinct pairs mixed with random lookups."""
    used: Set[Tuple[int, int]] = set()
    commands: List[Command] = []
    for i in range(1, 100 * t + 1):
        op = 1 if i <= _WARMUP else rng.randrange(2)
        if op:
            pair = _fresh_pair(rng, used)
            used.add(pair)
            commands.append(("insert", *pair))
        else:
            commands.append(("find", rng.randint(1, _RANGE)))
    return commands


def insert_then_delete(t: int) -> List[Command]:
    """Insert keys 1..2t in ascending order, then delete them in the same order."""
    keys = range(1, 2 * t + 1)
    return [("insert", i, i) for i in keys] + [("delete", i, i) for i in keys]


def reverse_insert_then_delete(t: int) -> List[Command]:
    """Insert keys 2t..1 in descending order, then delete them in that order."""
    keys = range(2 * t, 0, -1)
    return [("insert", i, i) for i in keys] + [("delete", i, i) for i in keys]


def insert_delete_find(t: int) -> List[Command]:
    """Insert 1..2t, look all up, delete the upper half, look all up again."""
    keys = range(1, 2 * t + 1)
    return (
        [("insert", i, i) for i in keys]
        + [("find", i) for i in keys]
        + [("delete", i, i) for i in range(t + 1, 2 * t + 1)]
        + [("find", i) for i in keys]
    )


def random_mixed(t: int, rng: random.Random) -> List[Command]:
    """Random inserts, lookups, deletes of live pairs and blind deletes."""
    live: Set[Tuple[int, int]] = set()
    commands: List[Command] = []
    for i in range(1, 100 * t + 1):
        op = 1 if i <= _WARMUP else rng.randrange(4)
        if op == 3 and not live:
            op = 0
        if op == 1:
            pair = _fresh_pair(rng, live)
            live.add(pair)
            commands.append(("insert", *pair))
        elif op == 2:
            commands.append(("find", rng.randint(1, _RANGE)))
        elif op == 3:
            pair = rng.choice(sorted(live))
            live.discard(pair)
            commands.append(("delete", *pair))
        else:
            pair = _random_pair(rng)
            live.discard(pair)
            commands.append(("delete", *pair))
    return commands


def format_script(commands: Iterable[Command]) -> str:
    """Render commands as a script: a count line, then one command per line."""
    lines = [" ".join(str(part) for part in command) for command in commands]
    return "".join(f"{line}\n" for line in [str(len(lines)), *lines])


_KINDS = {
    1: lambda t, rng: shuffled_inserts(t, rng),
    2: lambda t, rng: insert_then_find(t),
    3: lambda t, rng: random_insert_find(t, rng),
    4: lambda t, rng: insert_then_delete(t),
    5: lambda t, rng: insert_delete_find(t),
    6: lambda t, rng: random_mixed(t, rng),
    7: lambda t, rng: reverse_insert_then_delete(t),
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Write a test command script.")
    parser.add_argument("-k", "--kind", type=int, choices=sorted(_KINDS), default=6)
    parser.add_argument("-t", type=int, default=20, help="size parameter")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("-o", "--output", default="data", help="'-' for stdout")
    args = parser.parse_args(argv)
    if args.t < 0:
        parser.error("-t must not be negative")
    rng = random.Random(args.seed)
    script = format_script(_KINDS[args.kind](args.t, rng))
    if args.output == "-":
        sys.stdout.write(script)
    else:
        with open(args.output, "w", encoding="ascii") as f:
            f.write(script)
    return 0