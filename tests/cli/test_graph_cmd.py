"""
Tests for the `graph` command.
"""

import json

from rich.console import Console

from critsec.cli.__main__ import main
from critsec.utils.console import set_console

CODE = """\
def helper():
  pass


def main():
  helper()


def orphan():
  pass
"""


def test_graph_json(tmp_path, capsys):
  f = tmp_path / "app.py"
  f.write_text(CODE, encoding="utf-8")

  assert main(["graph", str(f), "--json"]) == 0
  data = json.loads(capsys.readouterr().out)

  assert {"caller": f"app.main ({f}:5:1)", "callee": f"app.helper ({f}:1:1)"} in data["edges"]
  assert f"app.orphan ({f}:9:1)" not in data["live"]
  assert f"app.helper ({f}:1:1)" in data["live"]
  assert data["entry_points"] == [f"app.<module> ({f}:1:1)", f"app.main ({f}:5:1)"]


def test_graph_table(tmp_path):
  f = tmp_path / "app.py"
  f.write_text(CODE, encoding="utf-8")
  buffer = Console(record=True, width=200)
  set_console(buffer)

  assert main(["graph", str(f)]) == 0
  text = buffer.export_text()
  assert "Call Graph" in text
  assert "Dead units:  1" in text
  assert "app.orphan" in text


def test_graph_missing_path(tmp_path):
  assert main(["graph", str(tmp_path / "missing")]) == 2
