# bptstore

`bptstore` is a small key-value index kept on disk as a B+ tree. Keys are
strings, stored by a 64-bit hash (`bptstore.tree.key_hash`), and each key may
hold many 32-bit integer values; the same pair may even be stored more than
once. Entries are ordered by key hash and then by value, leaves are linked
for scans, and node records are cached in memory with a least-recently-used
policy before being written back to their file.

## Installing

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Using it from Python

```python
from bptstore.tree import BPlusTree

with BPlusTree("store", order=300) as tree:
    tree.insert("apple", 3)
    tree.insert("apple", 1)
    tree.insert("pear", 7)
    tree.delete("pear", 7)      # True: one copy was removed
    print(tree.find("apple"))   # [1, 3]
    print(tree.find("pear"))    # []
```

- `BPlusTree(directory=".", order=300)` keeps its data in `nodes.db` and
  `meta.db` inside `directory`, creating the directory if needed. `order` is
  the most keys a node holds and must be at least 3.
- `insert(key, value)` stores a pair; `delete(key, value)` removes one copy
  and returns whether it found one; `find(key)` returns the values under a
  key in ascending order.
- Values outside the signed 32-bit range raise `ValueError`.
- Opening the same directory again picks up where the previous session left
  off; the root position is written back by `close()` (or on leaving the
  `with` block). Opening it with a different `order` than it was built with
  raises `ValueError`.

Lower-level pieces are available too: `bptstore.storage.RecordFile` is a file
of fixed-size records addressed by byte offset, with a header of integer
slots (`get_info`, `write_info`) and a write-back cache of recently used
records (`cache_size`, 100 by default). `bptstore.storage.RecordCodec`
describes how one record is packed into bytes with a `struct` format.

## Command interpreter

`bptstore` reads a script from standard input. The first token gives the
number of commands; each command is one of

```
insert <key> <value>
delete <key> <value>
find <key>
```

Only the first letter of the command word is looked at. For every `find` it
prints one line: the values stored under the key in ascending order, each
followed by a space, or `null` if there are none. For example:

```
$ printf '4\ninsert a 2\ninsert a 1\nfind a\nfind b\n' | bptstore
1 2 
null
```

Deleting a pair that is not present does nothing. Options:

- `-d`, `--directory`: where the data files live (default: the current
  directory)
- `--order`: keys per node (default 300)

From Python, `bptstore.cli.run(tree, source, out)` runs a script from any
text stream against an open tree.

## Generating test scripts

`bptstore-gen` writes a command script in the format the interpreter reads.

```
bptstore-gen -k 5 -t 20 -o -
```

- `-k`, `--kind` (default 6):
  1. keys 1..t inserted in shuffled order
  2. inserts, finds, second inserts for every key, finds again
  3. random inserts of distinct pairs mixed with random finds
  4. keys 1..2t inserted, then deleted, in ascending order
  5. keys 1..2t inserted and found, the upper half deleted, all found again
  6. random inserts, finds, deletes of stored pairs and blind deletes
  7. keys 2t..1 inserted, then deleted, in descending order
- `-t`: size parameter (default 20)
- `--seed`: seed for the random kinds
- `-o`, `--output`: file to write (default `data`); `-` writes to standard
  output

The random kinds draw keys and values from 1 to 100. The same generators are
available as functions in `bptstore.gen`, with `format_script` turning a list
of commands into script text.

## Limits

- Keys are stored only by their hash, so two keys with the same hash share
  their values, and keys cannot be listed back.
- There is no locking: a directory should be used by one tree at a time.
- Changes reach the files when cached records are evicted or the tree is
  closed; a process that stops without closing the tree may leave the files
  inconsistent.