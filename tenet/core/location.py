# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Source location attached to diagnostics.

A Location is best-effort: the parser fills in file/row/col from lark token
metadata, loaders only know the file. `text` carries the offending source
line when the parser can recover it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence


@dataclass(frozen=True)
class Location:
	"""Represents a position in a source file (row/col are 1-based)."""

	file: Optional[str] = None
	row: Optional[int] = None
	col: Optional[int] = None
	text: Optional[str] = None

	@classmethod
	def from_meta(cls, file: Optional[str], meta: Any, lines: Optional[Sequence[str]] = None) -> "Location":
		"""
		Construct a Location from a lark Token/Meta (anything with line/column).

		When the source `lines` are given the matching line is captured into
		`text` so pretty output can show it without re-reading the file.
		"""
		if meta is None:
			return cls(file=file)
		if isinstance(meta, cls):
			return meta
		row = getattr(meta, "line", None)
		col = getattr(meta, "column", None)
		text = None
		if lines is not None and row is not None:
			if 0 < row <= len(lines):
				text = lines[row - 1]
		return cls(file=file, row=row, col=col, text=text)

	def __str__(self) -> str:
		if self.file and self.row is not None:
			return f"{self.file}:{self.row}"
		if self.file:
			return self.file
		if self.row is not None:
			return f"{self.row}:{self.col}"
		return ""

	def to_json(self) -> dict[str, Any]:
		out: dict[str, Any] = {"file": self.file or "", "row": self.row or 0, "col": self.col or 0}
		if self.text is not None:
			out["text"] = self.text
		return out


__all__ = ["Location"]
