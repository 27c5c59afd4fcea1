# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

import io
import json
import os
import tarfile
from pathlib import Path
from typing import Dict

import pytest

from tenet.bundle import Manifest, as_bundle
from tenet.core.errors import BUNDLE_ERR, PARSE_ERR, TenetError


def _write_tree(root: Path, files: Dict[str, str]) -> Path:
	for rel, text in files.items():
		path = root / rel
		path.parent.mkdir(parents=True, exist_ok=True)
		path.write_text(text)
	return root


def _write_tarball(path: Path, files: Dict[str, str]) -> Path:
	with tarfile.open(path, "w:gz") as tar:
		for rel, text in files.items():
			raw = text.encode("utf-8")
			info = tarfile.TarInfo(name=rel)
			info.size = len(raw)
			tar.addfile(info, io.BytesIO(raw))
	return path


FILES = {
	"authz/policy.tenet": "package authz\nallow { input.user == data.authz.admin }\n",
	"authz/data.json": '{"admin": "alice"}',
	"shared/lib.tenet": "package shared\nok = true\n",
	"shared/acl/data.yaml": "groups:\n  - ops\n",
}


def test_directory_bundle(tmp_path: Path):
	root = _write_tree(tmp_path / "bundle", FILES)
	bundle = as_bundle(str(root))

	assert [mf.path for mf in bundle.modules] == ["/authz/policy.tenet", "/shared/lib.tenet"]
	assert bundle.modules[0].parsed.name == "/authz/policy.tenet"
	assert bundle.modules[0].raw == FILES["authz/policy.tenet"].encode()
	assert bundle.data == {"authz": {"admin": "alice"}, "shared": {"acl": {"groups": ["ops"]}}}
	assert bundle.manifest == Manifest()


def test_tarball_bundle_matches_directory(tmp_path: Path):
	tarball = _write_tarball(tmp_path / "bundle.tar.gz", {"./" + k: v for k, v in FILES.items()})
	directory = _write_tree(tmp_path / "bundle", FILES)

	from_tar = as_bundle(str(tarball))
	from_dir = as_bundle(str(directory))

	assert [mf.path for mf in from_tar.modules] == [mf.path for mf in from_dir.modules]
	assert [mf.parsed for mf in from_tar.modules] == [mf.parsed for mf in from_dir.modules]
	assert from_tar.data == from_dir.data


def test_manifest_roots_are_enforced(tmp_path: Path):
	files = dict(FILES)
	files[".manifest"] = json.dumps({"revision": "r1", "roots": ["authz", "shared"]})
	bundle = as_bundle(str(_write_tree(tmp_path / "ok", files)))
	assert bundle.manifest == Manifest(revision="r1", roots=("authz", "shared"))

	files[".manifest"] = json.dumps({"roots": ["authz"]})
	with pytest.raises(TenetError) as excinfo:
		as_bundle(str(_write_tree(tmp_path / "bad", files)))
	assert excinfo.value.code == BUNDLE_ERR
	assert "do not permit package data.shared" in excinfo.value.message


def test_manifest_roots_cover_data(tmp_path: Path):
	files = {
		".manifest": json.dumps({"roots": ["authz"]}),
		"authz/policy.tenet": "package authz\np { true }\n",
		"other/data.json": '{"x": 1}',
	}
	with pytest.raises(TenetError) as excinfo:
		as_bundle(str(_write_tree(tmp_path / "b", files)))
	assert excinfo.value.message == "manifest roots ['authz'] do not permit data at path /other/x"


def test_invalid_manifest(tmp_path: Path):
	root = _write_tree(tmp_path / "b", {".manifest": '{"roots": "authz"}'})
	with pytest.raises(TenetError) as excinfo:
		as_bundle(str(root))
	assert excinfo.value.code == BUNDLE_ERR
	assert excinfo.value.message.endswith("roots must be a list of strings")


def test_bundle_parse_error_propagates(tmp_path: Path):
	root = _write_tree(tmp_path / "b", {"x.tenet": "package x\np {\n"})
	with pytest.raises(TenetError) as excinfo:
		as_bundle(str(root))
	assert excinfo.value.code == PARSE_ERR
	assert excinfo.value.location.file == "/x.tenet"


def test_bundle_bad_data_document(tmp_path: Path):
	root = _write_tree(tmp_path / "b", {"data.json": "[1, 2]"})
	with pytest.raises(TenetError) as excinfo:
		as_bundle(str(root))
	assert excinfo.value.code == BUNDLE_ERR
	assert excinfo.value.message == "/data.json: data document must be an object"


def test_not_a_bundle(tmp_path: Path):
	plain = tmp_path / "policy.tenet"
	plain.write_text("package a\n")
	with pytest.raises(TenetError) as excinfo:
		as_bundle(str(plain))
	assert excinfo.value.code == BUNDLE_ERR

	with pytest.raises(TenetError) as excinfo:
		as_bundle(str(tmp_path / "missing"))
	assert excinfo.value.message.endswith("no such file or directory")


def test_corrupt_tarball(tmp_path: Path):
	tarball = tmp_path / "b.tgz"
	tarball.write_bytes(b"not gzip at all")
	with pytest.raises(TenetError) as excinfo:
		as_bundle(str(tarball))
	assert excinfo.value.code == BUNDLE_ERR


def test_truncated_tarball(tmp_path: Path):
	body = "".join(f"p{i} {{ input.x[{i}] == \"v{i}\" }}\n" for i in range(5000))
	tarball = _write_tarball(tmp_path / "b.tar.gz", {"p.tenet": "package a\n" + body})
	raw = tarball.read_bytes()
	tarball.write_bytes(raw[: len(raw) // 2])
	with pytest.raises(TenetError) as excinfo:
		as_bundle(str(tarball))
	assert excinfo.value.code == BUNDLE_ERR
	assert excinfo.value.message.startswith(f"{tarball}: ")


def test_unreadable_subdirectory(tmp_path: Path, monkeypatch):
	root = _write_tree(tmp_path / "bundle", {"a.tenet": "package a\n", "sub/b.tenet": "package b\n"})
	real_scandir = os.scandir

	def scandir(path):
		if Path(path).name == "sub":
			raise PermissionError(13, "Permission denied", str(path))
		return real_scandir(path)

	monkeypatch.setattr(os, "scandir", scandir)
	with pytest.raises(TenetError) as excinfo:
		as_bundle(str(root))
	assert excinfo.value.code == BUNDLE_ERR
	assert "Permission denied" in excinfo.value.message
