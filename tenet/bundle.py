# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Bundle reader.

A bundle is a directory or a gzipped tarball holding policy modules
(`*.tenet`), data documents (`data.json`, `data.yaml`, `data.yml`) and an
optional `.manifest`:

    {"revision": "2024-01-01", "roots": ["authz", "shared/acl"]}

Paths inside a bundle are slash-separated and start with `/`. Data
documents are merged into one tree at the directory that holds them. When
the manifest declares roots, every package and data path must lie under
one of them.
"""

from __future__ import annotations

import json
import os
import tarfile
import zlib
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterator, List, Tuple

import structlog

from tenet.core.errors import BUNDLE_ERR, TenetError
from tenet.core.location import Location
from tenet.loader import MODULE_SUFFIX, load_document
from tenet.parser import parse_module
from tenet.parser.ast import Module

logger = structlog.get_logger(__name__)

MANIFEST_NAME = ".manifest"
DATA_NAMES = ("data.json", "data.yaml", "data.yml")
TARBALL_SUFFIXES = (".tar.gz", ".tgz")


@dataclass(frozen=True)
class Manifest:
	revision: str = ""
	roots: Tuple[str, ...] = ("",)

	def permits(self, path: str) -> bool:
		"""True when the slash-separated `path` lies under a declared root."""
		for root in self.roots:
			if root == "" or path == root or path.startswith(root + "/"):
				return True
		return False


@dataclass(frozen=True)
class ModuleFile:
	path: str
	raw: bytes
	parsed: Module


@dataclass
class Bundle:
	modules: List[ModuleFile] = field(default_factory=list)
	data: Dict[str, Any] = field(default_factory=dict)
	manifest: Manifest = field(default_factory=Manifest)


def _bundle_error(source: str, message: str) -> TenetError:
	return TenetError(BUNDLE_ERR, message, Location(file=source))


def _raise(err: OSError) -> None:
	raise err


def _iter_directory(root: Path) -> Iterator[Tuple[str, bytes]]:
	for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
		dirnames.sort()
		for filename in sorted(filenames):
			full = Path(dirpath) / filename
			rel = full.relative_to(root).as_posix()
			with open(full, "rb") as fp:
				yield "/" + rel, fp.read()


def _iter_tarball(path: Path) -> Iterator[Tuple[str, bytes]]:
	with tarfile.open(path, "r:gz") as tar:
		members = sorted((m for m in tar.getmembers() if m.isfile()), key=lambda m: m.name)
		for member in members:
			name = member.name
			while name.startswith("./"):
				name = name[2:]
			fp = tar.extractfile(member)
			if fp is None:
				continue
			with fp:
				yield "/" + name.lstrip("/"), fp.read()


def _read_manifest(source: str, raw: bytes) -> Manifest:
	try:
		doc = json.loads(raw.decode("utf-8"))
	except (UnicodeDecodeError, ValueError) as err:
		raise _bundle_error(source, f"{source}: invalid manifest: {err}") from err
	if not isinstance(doc, dict):
		raise _bundle_error(source, f"{source}: invalid manifest: expected an object")
	revision = doc.get("revision", "")
	roots = doc.get("roots", [""])
	if not isinstance(revision, str):
		raise _bundle_error(source, f"{source}: invalid manifest: revision must be a string")
	if not isinstance(roots, list) or not all(isinstance(r, str) for r in roots):
		raise _bundle_error(source, f"{source}: invalid manifest: roots must be a list of strings")
	return Manifest(revision=revision, roots=tuple(r.strip("/") for r in roots))


def _merge(tree: Dict[str, Any], parts: List[str], value: Any) -> None:
	node = tree
	for part in parts:
		child = node.get(part)
		if not isinstance(child, dict):
			child = {}
			node[part] = child
		node = child
	for key, item in value.items():
		if isinstance(item, dict) and isinstance(node.get(key), dict):
			_merge(node, [key], item)
		else:
			node[key] = item


def _check_roots(source: str, bundle: Bundle, data_paths: List[str]) -> None:
	manifest = bundle.manifest
	for mf in bundle.modules:
		pkg = "/".join(mf.parsed.package)
		if not manifest.permits(pkg):
			raise _bundle_error(
				source,
				f"manifest roots {list(manifest.roots)} do not permit package {mf.parsed.package_path} in module {mf.path}",
			)
	for path in data_paths:
		if not manifest.permits(path):
			raise _bundle_error(source, f"manifest roots {list(manifest.roots)} do not permit data at path /{path}")


def as_bundle(path: str) -> Bundle:
	"""
	Read one bundle from a directory or a `.tar.gz`/`.tgz` file.

	Raises TenetError: `tenet_bundle_error` for unreadable or inconsistent
	bundles, or the module's own `tenet_parse_error`.
	"""
	root = Path(path)
	if root.is_dir():
		files = _iter_directory(root)
		kind = "directory"
	elif root.is_file() and path.endswith(TARBALL_SUFFIXES):
		files = _iter_tarball(root)
		kind = "tarball"
	elif root.exists():
		raise _bundle_error(path, f"{path}: not a bundle directory or .tar.gz archive")
	else:
		raise _bundle_error(path, f"{path}: no such file or directory")
	logger.debug("bundle_opened", path=path, kind=kind)

	bundle = Bundle()
	data_paths: List[str] = []
	try:
		for rel, raw in files:
			name = PurePosixPath(rel)
			if rel == "/" + MANIFEST_NAME:
				bundle.manifest = _read_manifest(path, raw)
			elif name.suffix == MODULE_SUFFIX:
				module = parse_module(_decode(path, rel, raw), rel)
				bundle.modules.append(ModuleFile(path=rel, raw=raw, parsed=module))
				logger.debug("bundle_module_loaded", bundle=path, path=rel, package=module.package_path)
			elif name.name in DATA_NAMES:
				try:
					doc = load_document(_decode(path, rel, raw), rel, yaml_syntax=name.suffix != ".json")
				except TenetError as err:
					raise TenetError(BUNDLE_ERR, err.message, err.location) from err
				if doc is None:
					continue
				parts = [p for p in name.parent.parts if p != "/"]
				if not isinstance(doc, dict):
					raise _bundle_error(path, f"{rel}: data document must be an object")
				_merge(bundle.data, parts, doc)
				data_paths.extend("/".join(parts + [key]) for key in sorted(doc))
	except (OSError, EOFError, zlib.error, tarfile.TarError) as err:
		raise _bundle_error(path, f"{path}: {err}") from err

	_check_roots(path, bundle, data_paths)
	return bundle


def _decode(source: str, rel: str, raw: bytes) -> str:
	try:
		return raw.decode("utf-8")
	except UnicodeDecodeError as err:
		raise _bundle_error(source, f"{rel}: file is not valid UTF-8") from err


__all__ = ["Bundle", "Manifest", "ModuleFile", "as_bundle"]
