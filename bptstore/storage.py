"""Fixed-size record files with a header of integers and a write-back LRU cache."""

from __future__ import annotations

import os
import struct
from collections import OrderedDict
from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")

_INFO = struct.Struct("<i")


class RecordCodec(Generic[T]):
    """Converts records to and from fixed-size byte strings.

    ``fmt`` is a :mod:`struct` format; ``pack`` turns a record into the tuple
    of values for that format and ``unpack`` builds a record from such a tuple.
    """

    def __init__(
        self,
        fmt: str,
        pack: Callable[[T], tuple],
        unpack: Callable[[tuple], T],
    ) -> None:
        self._struct = struct.Struct(fmt)
        self._pack = pack
        self._unpack = unpack

    @property
    def size(self) -> int:
        """Number of bytes one encoded record occupies."""
        return self._struct.size

    def encode(self, record: T) -> bytes:
        return self._struct.pack(*self._pack(record))

    def decode(self, data: bytes) -> T:
        if len(data) != self.size:
            raise ValueError(
                f"expected {self.size} bytes for a record, got {len(data)}"
            )
        return self._unpack(self._struct.unpack(data))


class RecordFile(Generic[T]):
    """A binary file of fixed-size records addressed by byte offset.

    The file starts with ``info_len`` little-endian 32-bit integers that can be
    read and written with :meth:`get_info` and :meth:`write_info`.  Records are
    appended after that header.  Recently used records are kept in a cache of
    at most ``cache_size`` entries; updates go to the cache and reach the file
    when an entry is evicted, on :meth:`flush` or on :meth:`close`.
    """

    def __init__(
        self,
        path: "os.PathLike[str] | str",
        codec: RecordCodec[T],
        info_len: int = 2,
        cache_size: int = 100,
    ) -> None:
        if info_len < 0:
            raise ValueError("info_len must not be negative")
        if cache_size < 1:
            raise ValueError("cache_size must be at least 1")
        self.path = os.fspath(path)
        self.codec = codec
        self.info_len = info_len
        self.cache_size = cache_size
        self._file: Optional[Any] = None
        self._cache: "OrderedDict[int, bytes]" = OrderedDict()

    @property
    def header_size(self) -> int:
        return self.info_len * _INFO.size

    @property
    def is_open(self) -> bool:
        return self._file is not None

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def initialise(self) -> None:
        """Create (or truncate) the file with a zeroed header and open it."""
        self.close()
        with open(self.path, "wb") as f:
            f.write(_INFO.pack(0) * self.info_len)
        self._file = open(self.path, "r+b")

    def open(self) -> None:
        """Open an existing file for reading and writing."""
        self.close()
        self._file = open(self.path, "r+b")

    def _handle(self) -> Any:
        if self._file is None:
            raise ValueError(f"record file {self.path!r} is not open")
        return self._file

    def _check_info_index(self, n: int) -> None:
        if not 1 <= n <= self.info_len:
            raise IndexError(f"info index {n} outside 1..{self.info_len}")

    def get_info(self, n: int) -> int:
        """Return the ``n``-th header integer (counted from 1)."""
        self._check_info_index(n)
        f = self._handle()
        f.seek((n - 1) * _INFO.size)
        data = f.read(_INFO.size)
        if len(data) != _INFO.size:
            raise EOFError(f"header of {self.path!r} is truncated")
        return _INFO.unpack(data)[0]

    def write_info(self, value: int, n: int) -> None:
        """Store ``value`` as the ``n``-th header integer (counted from 1)."""
        self._check_info_index(n)
        f = self._handle()
        f.seek((n - 1) * _INFO.size)
        f.write(_INFO.pack(value))

    def _check_pos(self, pos: int) -> None:
        if pos < self.header_size:
            raise ValueError(f"position {pos} lies inside the header")

    def _remember(self, pos: int, data: bytes) -> None:
        self._cache[pos] = data
        self._cache.move_to_end(pos)
        while len(self._cache) > self.cache_size:
            old_pos, old_data = self._cache.popitem(last=False)
            f = self._handle()
            f.seek(old_pos)
            f.write(old_data)

    def append(self, record: T) -> int:
        """Write ``record`` at the end of the file and return its position."""
        f = self._handle()
        data = self.codec.encode(record)
        f.seek(0, os.SEEK_END)
        pos = f.tell()
        f.write(data)
        self._remember(pos, data)
        return pos

    def update(self, record: T, pos: int) -> None:
        """Replace the record stored at ``pos``."""
        self._handle()
        self._check_pos(pos)
        self._remember(pos, self.codec.encode(record))

    def read(self, pos: int) -> T:
        """Return the record stored at ``pos``."""
        f = self._handle()
        self._check_pos(pos)
        data = self._cache.get(pos)
        if data is not None:
            self._cache.move_to_end(pos)
            return self.codec.decode(data)
        f.seek(pos)
        data = f.read(self.codec.size)
        if len(data) != self.codec.size:
            raise EOFError(f"no complete record at position {pos}")
        self._remember(pos, data)
        return self.codec.decode(data)

    def flush(self) -> None:
        """Write every cached record to the file."""
        f = self._handle()
        for pos, data in self._cache.items():
            f.seek(pos)
            f.write(data)
        f.flush()

    def close(self) -> None:
        """Flush the cache and close the file; closing twice is harmless."""
        if self._file is None:
            return
        try:
            self.flush()
        finally:
            self._file.close()
            self._file = None
            self._cache.clear()

    def __enter__(self) -> "RecordFile[T]":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()