# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import json
import os
import tarfile
from pathlib import Path

from structlog.testing import capture_logs

from tenet.check import CheckParams, OutputFormat, check_modules
from tenet.compiler import Compiler

VALID = "package authz\n\nallow {\n\tinput.user == \"admin\"\n}\n"


def _write(path: Path, text: str) -> str:
	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_text(text)
	return str(path)


def test_parse_error_pretty(tmp_path: Path, capsys):
	src = _write(tmp_path / "broken.tenet", "package a\n\np {\n\tx := 1 +\n")
	rc = check_modules(CheckParams(), [src])
	out = capsys.readouterr().out
	assert rc == 1
	assert out.startswith("1 error occurred during loading: ")
	assert "tenet_parse_error" in out
	assert "unexpected" in out


def test_type_error_json(tmp_path: Path, capsys):
	src = _write(tmp_path / "p.tenet", "package a\n\np {\n\tcount(1) > 0\n}\n")
	rc = check_modules(CheckParams(format=OutputFormat.JSON), [src])
	out = capsys.readouterr().out
	assert rc == 1
	doc = json.loads(out)
	assert list(doc) == ["errors"]
	assert len(doc["errors"]) == 1
	err = doc["errors"][0]
	assert err["code"] == "tenet_type_error"
	assert err["message"] == "count: invalid argument(s)"
	assert err["location"]["file"] == src
	assert err["location"]["row"] == 4
	assert out.endswith("}\n")


def test_valid_file_prints_nothing(tmp_path: Path, capsys):
	src = _write(tmp_path / "ok.tenet", VALID)
	assert check_modules(CheckParams(), [src]) == 0
	assert capsys.readouterr().out == ""


def test_ignored_invalid_file(tmp_path: Path, capsys):
	good = _write(tmp_path / "good.tenet", VALID)
	bad = _write(tmp_path / "bad.tenet", "this is not a module {")
	params = CheckParams(ignore=("bad.tenet",))
	assert check_modules(params, [good, bad]) == 0
	assert check_modules(params, [str(tmp_path)]) == 0
	assert capsys.readouterr().out == ""
	assert check_modules(CheckParams(), [good, bad]) == 1


def test_bundle_collision_last_write_wins(tmp_path: Path, capsys):
	first = tmp_path / "first"
	_write(first / "a.tenet", "package a\np { x }\n")
	_write(first / "b.tenet", "package b\nq { true }\n")
	second = tmp_path / "second"
	_write(second / "a.tenet", "package a\np { true }\n")

	params = CheckParams(bundle_mode=True)
	with capture_logs() as logs:
		rc = check_modules(params, [str(first), str(second)])

	assert rc == 0
	assert capsys.readouterr().out == ""
	replaced = [e for e in logs if e["event"] == "module_replaced"]
	assert replaced == [{"event": "module_replaced", "key": "/a.tenet", "log_level": "warning"}]

	assert check_modules(params, [str(second), str(first)]) == 1
	assert "var x is unsafe" in capsys.readouterr().out


def test_bundle_mode_skips_ignore_patterns(tmp_path: Path, capsys):
	root = tmp_path / "bundle"
	_write(root / "bad.tenet", "package a\np { x }\n")
	params = CheckParams(bundle_mode=True, ignore=("bad.tenet",))
	assert check_modules(params, [str(root)]) == 1
	assert "tenet_unsafe_var_error" in capsys.readouterr().out


def test_bundle_error_reported(tmp_path: Path, capsys):
	rc = check_modules(CheckParams(bundle_mode=True, format=OutputFormat.JSON), [str(tmp_path / "nope")])
	doc = json.loads(capsys.readouterr().out)
	assert rc == 1
	assert doc["errors"][0]["code"] == "tenet_bundle_error"


def test_bundle_and_filtered_agree(tmp_path: Path, capsys):
	_write(tmp_path / "lib" / "lib.tenet", "package lib\ninc(x) = y { y := x + 1 }\n")
	_write(tmp_path / "app" / "app.tenet", "package app\nimport data.lib\np { lib.inc(1) == 2 }\n")
	assert check_modules(CheckParams(), [str(tmp_path)]) == 0
	assert check_modules(CheckParams(bundle_mode=True), [str(tmp_path)]) == 0
	assert capsys.readouterr().out == ""


def test_error_limit_in_output(tmp_path: Path, capsys):
	body = "".join(f"p{i} {{ v{i} }}\n" for i in range(4))
	src = _write(tmp_path / "many.tenet", "package a\n" + body)
	rc = check_modules(CheckParams(error_limit=2), [src])
	out = capsys.readouterr().out
	assert rc == 1
	lines = out.splitlines()
	assert lines[0] == "3 errors occurred:"
	assert lines[1] == f"{src}:2: tenet_unsafe_var_error: var v0 is unsafe"
	assert lines[-1] == "tenet_compile_error: error limit reached"


def test_data_documents_load_alongside_modules(tmp_path: Path, capsys):
	_write(tmp_path / "p.tenet", VALID)
	_write(tmp_path / "data.json", "{oops")
	assert check_modules(CheckParams(), [str(tmp_path)]) == 1
	assert "invalid JSON" in capsys.readouterr().out


def test_valid_file_prints_nothing_as_json(tmp_path: Path, capsys):
	src = _write(tmp_path / "ok.tenet", VALID)
	assert check_modules(CheckParams(format=OutputFormat.JSON), [src]) == 0
	assert capsys.readouterr().out == ""


def test_load_error_skips_compilation(tmp_path: Path, capsys, monkeypatch):
	_write(tmp_path / "ok.tenet", VALID)
	_write(tmp_path / "broken.tenet", "package a\np {\n")

	def compile(self, modules):
		raise AssertionError("compiler invoked after a load error")

	monkeypatch.setattr(Compiler, "compile", compile)
	assert check_modules(CheckParams(), [str(tmp_path)]) == 1
	assert check_modules(CheckParams(bundle_mode=True), [str(tmp_path)]) == 1
	assert "tenet_parse_error" in capsys.readouterr().out


def test_truncated_bundle_tarball_exits_one(tmp_path: Path, capsys):
	body = "".join(f"p{i} {{ input.x[{i}] == \"v{i}\" }}\n" for i in range(5000))
	_write(tmp_path / "src" / "p.tenet", "package a\n" + body)
	tarball = tmp_path / "bundle.tar.gz"
	with tarfile.open(tarball, "w:gz") as tar:
		tar.add(tmp_path / "src" / "p.tenet", arcname="p.tenet")
	raw = tarball.read_bytes()
	tarball.write_bytes(raw[: len(raw) // 2])

	rc = check_modules(CheckParams(bundle_mode=True, format=OutputFormat.JSON), [str(tarball)])
	doc = json.loads(capsys.readouterr().out)
	assert rc == 1
	assert [err["code"] for err in doc["errors"]] == ["tenet_bundle_error"]


def test_directory_symlink_loop_is_accepted(tmp_path: Path, capsys):
	root = tmp_path / "tree"
	_write(root / "ok.tenet", VALID)
	(root / "self").symlink_to(".")
	assert check_modules(CheckParams(), [str(root)]) == 0
	assert check_modules(CheckParams(bundle_mode=True), [str(root)]) == 0
	assert capsys.readouterr().out == ""


def test_unreadable_bundle_directory_exits_one(tmp_path: Path, capsys, monkeypatch):
	root = tmp_path / "bundle"
	_write(root / "ok.tenet", VALID)
	_write(root / "sub" / "p.tenet", "package sub\np { x }\n")
	real_scandir = os.scandir

	def scandir(path):
		if Path(path).name == "sub":
			raise PermissionError(13, "Permission denied", str(path))
		return real_scandir(path)

	monkeypatch.setattr(os, "scandir", scandir)
	assert check_modules(CheckParams(bundle_mode=True), [str(root)]) == 1
	out = capsys.readouterr().out
	assert out.startswith("1 error occurred: ")
	assert "tenet_bundle_error" in out
