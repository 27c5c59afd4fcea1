# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Tenet parser entry points.

`parse_module` is the only boundary other packages use: it returns a Module
or raises a `TenetError` with code `tenet_parse_error`. lark exceptions never
escape this package.
"""

from __future__ import annotations

from lark import Token
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken

from tenet.core.errors import PARSE_ERR, TenetError
from tenet.core.location import Location
from tenet.parser import ast
from tenet.parser.parser import TenetSyntaxError, parse_program

_TOKEN_DESCRIPTIONS = {
	"_TERMINATOR": "newline",
	"$END": "eof",
}


def _describe_token(tok: Token) -> str:
	if tok.type == "_TERMINATOR" and tok.value == ";":
		return ";"
	if tok.type in _TOKEN_DESCRIPTIONS:
		return _TOKEN_DESCRIPTIONS[tok.type]
	return str(tok.value)


def _unexpected_input_error(err: UnexpectedInput, name: str, source: str) -> TenetError:
	lines = source.splitlines()
	loc = Location.from_meta(name, err, lines)
	details: dict[str, object] = {}
	if isinstance(err, UnexpectedToken):
		tok = err.token
		if tok.type == "$END":
			message = "unexpected eof token"
			loc = Location(file=name, row=len(lines) or 1, col=1)
		else:
			message = f"unexpected {_describe_token(tok)} token"
		expected = sorted(_describe_expected(e) for e in (err.expected or ()))
		if expected:
			details["expected"] = expected
	elif isinstance(err, UnexpectedCharacters):
		message = f"illegal token {err.char!r}"
	elif isinstance(err, UnexpectedEOF):
		message = "unexpected eof token"
	else:
		message = "unexpected input"
	return TenetError(code=PARSE_ERR, message=message, location=loc, details=details or None)


def _describe_expected(term: str) -> str:
	if term == "_TERMINATOR":
		return "newline"
	return term


def parse_module(source: str, name: str) -> ast.Module:
	"""
	Parse `source` into a Module whose identity key is `name`.

	Raises TenetError(tenet_parse_error) on any syntax error.
	"""
	try:
		module = parse_program(source, name)
	except TenetSyntaxError as err:
		raise TenetError(
			code=PARSE_ERR,
			message=str(err),
			location=Location.from_meta(name, err.loc, source.splitlines()),
		) from err
	except RecursionError as err:
		raise TenetError(code=PARSE_ERR, message="expression nested too deeply", location=Location(file=name)) from err
	except UnexpectedInput as err:
		raise _unexpected_input_error(err, name, source) from err
	return module


__all__ = ["TenetSyntaxError", "ast", "parse_module"]
