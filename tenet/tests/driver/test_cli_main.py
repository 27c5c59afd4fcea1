# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import json
from pathlib import Path

import pytest

from tenet.cli import main


def test_check_requires_a_path(capsys):
	with pytest.raises(SystemExit) as excinfo:
		main(["check"])
	assert excinfo.value.code == 2
	assert "usage:" in capsys.readouterr().err


def test_check_rejects_unknown_format(tmp_path: Path):
	with pytest.raises(SystemExit) as excinfo:
		main(["check", "--format", "xml", str(tmp_path)])
	assert excinfo.value.code == 2


def test_check_ok(tmp_path: Path, capsys):
	(tmp_path / "ok.tenet").write_text("package a\np { true }\n")
	assert main(["check", str(tmp_path)]) == 0
	assert capsys.readouterr().out == ""


def test_check_json_with_limit(tmp_path: Path, capsys):
	src = tmp_path / "bad.tenet"
	src.write_text("package a\np { x }\nq { y }\n")
	assert main(["check", "-f", "json", "-m", "1", str(src)]) == 1
	doc = json.loads(capsys.readouterr().out)
	assert [e["message"] for e in doc["errors"]] == ["var x is unsafe", "error limit reached"]


def test_check_ignore_and_bundle_flags(tmp_path: Path, capsys):
	(tmp_path / "good.tenet").write_text("package a\np { true }\n")
	(tmp_path / "bad.tenet").write_text("garbage {")
	assert main(["check", "--ignore", "bad.tenet", "--ignore", "*.md", str(tmp_path)]) == 0
	assert main(["check", "-b", str(tmp_path)]) == 1
	assert "tenet_parse_error" in capsys.readouterr().out


def test_verbose_logs_go_to_stderr(tmp_path: Path, capsys):
	(tmp_path / "ok.tenet").write_text("package a\np { true }\n")
	assert main(["-v", "--log-format", "json", "check", str(tmp_path)]) == 0
	captured = capsys.readouterr()
	assert captured.out == ""
	events = [json.loads(line)["event"] for line in captured.err.splitlines() if line.strip()]
	assert "module_loaded" in events
	assert "compile_finished" in events
