"""A disk-resident B+ tree mapping string keys to multisets of integers."""

from __future__ import annotations

import bisect
import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .storage import RecordCodec, RecordFile

DEFAULT_ORDER = 300

_NODES_FILE = "nodes.db"
_META_FILE = "meta.db"
_ROOT_SLOT = 1
_ORDER_SLOT = 2
_NO_NODE = -1

_HASH_BASE = 19260817
_HASH_MASK = (1 << 64) - 1
_INT32_MIN = -(1 << 31)
_INT32_MAX = (1 << 31) - 1


def key_hash(s: str) -> int:
    """Hash a key to an unsigned 64-bit integer.

    Bytes of the UTF-8 encoding are taken as signed 8-bit values.
    """
    h = 0
    for byte in s.encode("utf-8"):
        signed = byte - 256 if byte >= 128 else byte
        h = (h * _HASH_BASE + signed) & _HASH_MASK
    return h


@dataclass(frozen=True, order=True)
class Entry:
    """One stored pair: the hashed key and a value, ordered by both."""

    index: int
    value: int


@dataclass
class _Node:
    is_leaf: bool
    keys: List[Entry] = field(default_factory=list)
    children: List[int] = field(default_factory=list)
    prev: int = _NO_NODE
    next: int = _NO_NODE
    pos: int = field(default=_NO_NODE, compare=False)


def _node_codec(order: int) -> RecordCodec[_Node]:
    fmt = "<?iii" + "Qi" * order + "i" * (order + 1)
    key_fields = 2 * order

    def pack(node: _Node) -> tuple:
        if len(node.keys) > order:
            raise ValueError(f"node holds {len(node.keys)} keys, more than {order}")
        flat: list = [node.is_leaf, len(node.keys), node.prev, node.next]
        for entry in node.keys:
            flat.extend((entry.index, entry.value))
        flat.extend([0, 0] * (order - len(node.keys)))
        flat.extend(node.children)
        flat.extend([_NO_NODE] * (order + 1 - len(node.children)))
        return tuple(flat)

    def unpack(values: tuple) -> _Node:
        is_leaf, size, prev, nxt = values[:4]
        pairs = values[4 : 4 + key_fields]
        keys = [
            Entry(index, value)
            for index, value in zip(pairs[0 : 2 * size : 2], pairs[1 : 2 * size : 2])
        ]
        children = [] if is_leaf else list(values[4 + key_fields : 4 + key_fields + size + 1])
        return _Node(bool(is_leaf), keys, children, prev, nxt)

    return RecordCodec(fmt, pack, unpack)


_META_CODEC: RecordCodec[int] = RecordCodec("<i", lambda v: (v,), lambda t: t[0])


class BPlusTree:
    """A B+ tree of (key, value) pairs kept in files inside ``directory``.

    Each node holds at most ``order`` keys; nodes other than the root keep at
    least ``order // 2``.  The same pair may be stored more than once.
    """

    def __init__(self, directory: "os.PathLike[str] | str" = ".", order: int = DEFAULT_ORDER) -> None:
        if order < 3:
            raise ValueError("order must be at least 3")
        self.order = order
        directory = os.fspath(directory)
        os.makedirs(directory, exist_ok=True)
        self._nodes: RecordFile[_Node] = RecordFile(
            os.path.join(directory, _NODES_FILE), _node_codec(order)
        )
        self._meta: RecordFile[int] = RecordFile(os.path.join(directory, _META_FILE), _META_CODEC)
        if self._meta.exists():
            self._meta.open()
            self._nodes.open()
            stored_order = self._meta.get_info(_ORDER_SLOT)
            if stored_order != order:
                self._nodes.close()
                self._meta.close()
                raise ValueError(
                    f"tree in {directory!r} was built with order {stored_order}, not {order}"
                )
            self._root = self._meta.get_info(_ROOT_SLOT)
        else:
            self._nodes.initialise()
            self._meta.initialise()
            self._meta.write_info(_NO_NODE, _ROOT_SLOT)
            self._meta.write_info(order, _ORDER_SLOT)
            self._root = _NO_NODE

    # -- node storage -------------------------------------------------------

    def _load(self, pos: int) -> _Node:
        node = self._nodes.read(pos)
        node.pos = pos
        return node

    def _store(self, node: _Node) -> None:
        self._nodes.update(node, node.pos)

    def _create(self, node: _Node) -> _Node:
        node.pos = self._nodes.append(node)
        return node

    @staticmethod
    def _entry(key: str, value: int) -> Entry:
        if not _INT32_MIN <= value <= _INT32_MAX:
            raise ValueError(f"value {value} does not fit in 32 bits")
        return Entry(key_hash(key), value)

    # -- insertion ----------------------------------------------------------

    def insert(self, key: str, value: int) -> None:
        """Store the pair ``(key, value)``."""
        entry = self._entry(key, value)
        if self._root == _NO_NODE:
            self._root = self._create(_Node(is_leaf=True, keys=[entry])).pos
            return
        split = self._insert(self._root, entry)
        if split is not None:
            separator, right_pos = split
            new_root = _Node(is_leaf=False, keys=[separator], children=[self._root, right_pos])
            self._root = self._create(new_root).pos

    def _insert(self, pos: int, entry: Entry) -> Optional[Tuple[Entry, int]]:
        node = self._load(pos)
        if node.is_leaf:
            node.keys.insert(bisect.bisect_left(node.keys, entry), entry)
            if len(node.keys) <= self.order:
                self._store(node)
                return None
            return self._split_leaf(node)
        i = bisect.bisect_right(node.keys, entry)
        split = self._insert(node.children[i], entry)
        if split is None:
            return None
        separator, right_pos = split
        node.keys.insert(i, separator)
        node.children.insert(i + 1, right_pos)
        if len(node.keys) <= self.order:
            self._store(node)
            return None
        return self._split_internal(node)

    def _split_leaf(self, node: _Node) -> Tuple[Entry, int]:
        half = (self.order + 1) // 2
        right = self._create(
            _Node(is_leaf=True, keys=node.keys[half:], prev=node.pos, next=node.next)
        )
        if node.next != _NO_NODE:
            following = self._load(node.next)
            following.prev = right.pos
            self._store(following)
        node.keys = node.keys[:half]
        node.next = right.pos
        self._store(node)
        return right.keys[0], right.pos

    def _split_internal(self, node: _Node) -> Tuple[Entry, int]:
        half = (self.order + 1) // 2
        separator = node.keys[half]
        right = self._create(
            _Node(
                is_leaf=False,
                keys=node.keys[half + 1 :],
                children=node.children[half + 1 :],
            )
        )
        node.keys = node.keys[:half]
        node.children = node.children[: half + 1]
        self._store(node)
        return separator, right.pos

    # -- deletion -----------------------------------------------------------

    def delete(self, key: str, value: int) -> bool:
        """Remove one copy of ``(key, value)``; return whether one was found."""
        entry = self._entry(key, value)
        if self._root == _NO_NODE:
            return False
        if not self._delete(self._root, entry):
            return False
        root = self._load(self._root)
        if not root.keys:
            self._root = _NO_NODE if root.is_leaf else root.children[0]
        return True

    def _delete(self, pos: int, entry: Entry) -> bool:
        node = self._load(pos)
        if node.is_leaf:
            i = bisect.bisect_left(node.keys, entry)
            if i == len(node.keys) or node.keys[i] != entry:
                return False
            del node.keys[i]
            self._store(node)
            return True
        i = bisect.bisect_right(node.keys, entry)
        if not self._delete(node.children[i], entry):
            return False
        child = self._load(node.children[i])
        if len(child.keys) < self.order // 2:
            self._rebalance(node, i, child)
        return True

    def _rebalance(self, parent: _Node, i: int, child: _Node) -> None:
        min_keys = self.order // 2
        left = self._load(parent.children[i - 1]) if i > 0 else None
        if left is not None and len(left.keys) > min_keys:
            if child.is_leaf:
                child.keys.insert(0, left.keys.pop())
                parent.keys[i - 1] = child.keys[0]
            else:
                child.keys.insert(0, parent.keys[i - 1])
                parent.keys[i - 1] = left.keys.pop()
                child.children.insert(0, left.children.pop())
            for node in (left, child, parent):
                self._store(node)
            return
        right = self._load(parent.children[i + 1]) if i < len(parent.keys) else None
        if right is not None and len(right.keys) > min_keys:
            if child.is_leaf:
                child.keys.append(right.keys.pop(0))
                parent.keys[i] = right.keys[0]
            else:
                child.keys.append(parent.keys[i])
                parent.keys[i] = right.keys.pop(0)
                child.children.append(right.children.pop(0))
            for node in (right, child, parent):
                self._store(node)
            return
        if left is not None:
            self._merge(parent, i - 1, left, child)
        elif right is not None:
            self._merge(parent, i, child, right)

    def _merge(self, parent: _Node, k: int, left: _Node, right: _Node) -> None:
        if left.is_leaf:
            left.keys.extend(right.keys)
            left.next = right.next
            if right.next != _NO_NODE:
                following = self._load(right.next)
                following.prev = left.pos
                self._store(following)
        else:
            left.keys.append(parent.keys[k])
            left.keys.extend(right.keys)
            left.children.extend(right.children)
        del parent.keys[k]
        del parent.children[k + 1]
        self._store(left)
        self._store(parent)

    # -- lookup -------------------------------------------------------------

    def find(self, key: str) -> List[int]:
        """Return every value stored under ``key``, in ascending order."""
        if self._root == _NO_NODE:
            return []
        index = key_hash(key)
        node = self._load(self._root)
        while not node.is_leaf:
            i = bisect.bisect_left([e.index for e in node.keys], index)
            node = self._load(node.children[i])
        values: List[int] = []
        while True:
            if node.keys and node.keys[0].index > index:
                break
            values.extend(e.value for e in node.keys if e.index == index)
            if node.next == _NO_NODE:
                break
            node = self._load(node.next)
        return values

    # -- lifetime -----------------------------------------------------------

    def close(self) -> None:
        """Record the root and close the files; closing twice is harmless."""
        if self._meta.is_open:
            self._meta.write_info(self._root, _ROOT_SLOT)
        self._nodes.close()
        self._meta.close()

    def __enter__(self) -> "BPlusTree":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()