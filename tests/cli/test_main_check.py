"""
Tests for the `check` command.

Verifies:
1. Diagnostics are printed one per line to stdout.
2. Exit codes: 1 with violations, 0 when clean, 2 on tool-fatal errors.
3. `--json` prints a valid JSON array.
4. `--context` adds the source block.
5. Mode flags reach the configuration.
"""

import json
from unittest.mock import patch

from critsec.cli.__main__ import main
from critsec.config import RuntimeConfig
from critsec.enums import ReachabilityMode

BAD = """\
from critsec import Section


class G(Section):
  pass


g = G()


def main():
  g.value = 1
"""

CLEAN = """\
from critsec import Section


class G(Section):
  pass


g = G()


def main():
  g.lease(lambda: g.value)
"""


def write(tmp_path, code, name="app.py"):
  f = tmp_path / name
  f.write_text(code, encoding="utf-8")
  return f


def test_violations_exit_one(tmp_path, capsys):
  f = write(tmp_path, BAD)
  ret = main(["check", str(f)])
  out = capsys.readouterr().out
  assert ret == 1
  assert out.splitlines() == [f"{f}:12:3: assignment to guarded-section without lease"]


def test_clean_exit_zero(tmp_path, capsys):
  f = write(tmp_path, CLEAN)
  assert main(["check", str(f)]) == 0
  assert capsys.readouterr().out == ""


def test_missing_path_exit_two(tmp_path, capsys):
  assert main(["check", str(tmp_path / "nope.py")]) == 2
  assert capsys.readouterr().out == ""


def test_syntax_error_exit_two(tmp_path):
  f = write(tmp_path, "def broken(:\n")
  assert main(["check", str(f)]) == 2


def test_json_output(tmp_path, capsys):
  f = write(tmp_path, BAD)
  ret = main(["check", str(f), "--json"])
  data = json.loads(capsys.readouterr().out)
  assert ret == 1
  assert data == [
    {
      "file": str(f),
      "line": 12,
      "column": 3,
      "kind": "unguarded-write",
      "message": "assignment to guarded-section without lease",
    }
  ]


def test_json_output_clean(tmp_path, capsys):
  f = write(tmp_path, CLEAN)
  assert main(["check", str(f), "--json"]) == 0
  assert json.loads(capsys.readouterr().out) == []


def test_context_lines(tmp_path, capsys):
  f = write(tmp_path, BAD)
  main(["check", str(f), "--context", "1"])
  lines = capsys.readouterr().out.splitlines()
  assert lines[0].endswith("12:3: assignment to guarded-section without lease")
  assert "  > 12 |   g.value = 1" in lines
  assert "    11 | def main():" in lines


def test_entry_flag(tmp_path, capsys):
  code = BAD.replace("def main():", "def serve():")
  f = write(tmp_path, code)
  assert main(["check", str(f)]) == 0
  assert main(["check", str(f), "--entry", "serve"]) == 1


def test_mode_flags_forwarded(tmp_path):
  f = write(tmp_path, CLEAN)
  with patch("critsec.cli.commands.handle_check", return_value=0) as mock_handle:
    main(["check", str(f), "--reachability", "single-predecessor", "--liveness", "has-caller", "--no-module-entry"])

  paths, config, json_mode = mock_handle.call_args[0]
  assert isinstance(config, RuntimeConfig)
  assert config.reachability == ReachabilityMode.SINGLE_PREDECESSOR
  assert config.liveness.value == "has-caller"
  assert config.module_entry is False
  assert json_mode is False


def test_invalid_context_exit_two(tmp_path):
  f = write(tmp_path, CLEAN)
  assert main(["check", str(f), "--context", "-3"]) == 2
