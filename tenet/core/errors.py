# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from tenet.core.location import Location

PARSE_ERR = "tenet_parse_error"
COMPILE_ERR = "tenet_compile_error"
TYPE_ERR = "tenet_type_error"
UNSAFE_VAR_ERR = "tenet_unsafe_var_error"
RECURSION_ERR = "tenet_recursion_error"
LOAD_ERR = "tenet_load_error"
BUNDLE_ERR = "tenet_bundle_error"


@dataclass(frozen=True)
class TenetError(Exception):
	"""
	A structured, serializable diagnostic.

	Used both as the element type of a compiler's error list and as a raised
	exception for single-error failures (bundle reads, parse errors).
	"""

	code: str
	message: str
	location: Location | None = None
	details: dict[str, Any] | None = field(default=None, compare=False)

	def __str__(self) -> str:
		return self.format_human()

	def format_human(self) -> str:
		prefix = str(self.location) if self.location is not None else ""
		if prefix:
			return f"{prefix}: {self.code}: {self.message}"
		return f"{self.code}: {self.message}"

	def to_json(self) -> dict[str, Any]:
		out: dict[str, Any] = {"code": self.code, "message": self.message}
		if self.location is not None:
			out["location"] = self.location.to_json()
		if self.details:
			out["details"] = dict(self.details)
		return out


class Errors(list):
	"""
	Ordered list of TenetError values.

	`str()` gives the human rendering used by `--format pretty`; `to_json()`
	gives the structured value placed under `errors` by `--format json`.
	"""

	suffix = ""

	def __init__(self, errors: Iterable[TenetError] = ()) -> None:
		super().__init__(errors)

	def __str__(self) -> str:
		if not self:
			return "no error(s)"
		if len(self) == 1:
			return f"1 error occurred{self.suffix}: {self[0]}"
		lines = [f"{len(self)} errors occurred{self.suffix}:"]
		lines.extend(str(err) for err in self)
		return "\n".join(lines)

	def to_json(self) -> list[dict[str, Any]]:
		return [err.to_json() for err in self]


class LoaderErrors(Exception):
	"""
	Raised by the filtered loader when any path failed to load or parse.

	Carries every error found during the walk; successfully loaded modules are
	discarded by the caller.
	"""

	def __init__(self, errors: Iterable[TenetError]) -> None:
		self.errors = Errors(errors)
		self.errors.suffix = " during loading"
		super().__init__(str(self.errors))

	def __str__(self) -> str:
		return str(self.errors)

	def __len__(self) -> int:
		return len(self.errors)

	def to_json(self) -> list[dict[str, Any]]:
		return self.errors.to_json()


__all__ = [
	"BUNDLE_ERR",
	"COMPILE_ERR",
	"Errors",
	"LOAD_ERR",
	"LoaderErrors",
	"PARSE_ERR",
	"RECURSION_ERR",
	"TYPE_ERR",
	"TenetError",
	"UNSAFE_VAR_ERR",
]
