import io
import sys

import pytest

from bptstore import gen
from bptstore.cli import main, run
from bptstore.tree import BPlusTree


def _run(tmp_path, script, order=4):
    out = io.StringIO()
    with BPlusTree(tmp_path, order=order) as tree:
        run(tree, io.StringIO(script), out)
    return out.getvalue()


def test_find_output_format(tmp_path):
    script = "4\ninsert a 2\ninsert a 1\nfind a\nfind b\n"
    assert _run(tmp_path, script) == "1 2 \nnull\n"


def test_delete_then_find(tmp_path):
    script = "4\ninsert a 1\ninsert a 2\ndelete a 1\nfind a\n"
    assert _run(tmp_path, script) == "2 \n"


def test_only_declared_count_is_run(tmp_path):
    script = "1\ninsert a 1\nfind a\n"
    assert _run(tmp_path, script) == ""


def test_truncated_input(tmp_path):
    with pytest.raises(ValueError):
        _run(tmp_path, "2\ninsert a 1\n")


def test_generated_script_line_count(tmp_path):
    commands = gen.insert_delete_find(10)
    output = _run(tmp_path, gen.format_script(commands), order=3)
    lines = output.splitlines()
    assert len(lines) == sum(1 for c in commands if c[0] == "find")
    assert lines[-1] == "null"
    assert lines[0] == "1 "


def test_main_persists_between_runs(tmp_path, monkeypatch, capsys):
    argv = ["-d", str(tmp_path), "--order", "4"]
    monkeypatch.setattr(sys, "stdin", io.StringIO("2\ninsert k 5\ninsert k 3\n"))
    assert main(argv) == 0
    assert capsys.readouterr().out == ""
    monkeypatch.setattr(sys, "stdin", io.StringIO("2\nfind k\nfind x\n"))
    assert main(argv) == 0
    assert capsys.readouterr().out == "3 5 \nnull\n"