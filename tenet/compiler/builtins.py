# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Builtin function signatures known to the compiler.

Only arity and coarse argument types are recorded: enough to reject calls
that can never succeed (`count(1)`, `lower(1, 2)`). An empty accepted set
means the argument takes any type.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Tuple

ANY = "any"
NUMBER = "number"
STRING = "string"
BOOLEAN = "boolean"
NULL = "null"
ARRAY = "array"
OBJECT = "object"
SET = "set"

TypeSet = FrozenSet[str]

_ANY: TypeSet = frozenset()


def _t(*names: str) -> TypeSet:
	return frozenset(names)


_NUM = _t(NUMBER)
_STR = _t(STRING)
_ARR = _t(ARRAY)
_OBJ = _t(OBJECT)
_SET = _t(SET)
_ARR_SET = _t(ARRAY, SET)
_COLL = _t(ARRAY, OBJECT, SET)


@dataclass(frozen=True)
class Builtin:
	name: str
	args: Tuple[TypeSet, ...]
	result: str = ANY

	@property
	def arity(self) -> int:
		return len(self.args)

	def accepts(self, index: int, type_name: str) -> bool:
		allowed = self.args[index]
		return type_name == ANY or not allowed or type_name in allowed

	def describe_args(self) -> list[str]:
		return [" | ".join(sorted(a)) if a else ANY for a in self.args]


def _b(name: str, *args: TypeSet, result: str = ANY) -> Builtin:
	return Builtin(name=name, args=tuple(args), result=result)


_ALL = [
	# aggregates
	_b("count", _t(ARRAY, OBJECT, SET, STRING), result=NUMBER),
	_b("sum", _ARR_SET, result=NUMBER),
	_b("product", _ARR_SET, result=NUMBER),
	_b("max", _ARR_SET),
	_b("min", _ARR_SET),
	_b("sort", _ARR_SET, result=ARRAY),
	# numbers
	_b("abs", _NUM, result=NUMBER),
	_b("round", _NUM, result=NUMBER),
	_b("ceil", _NUM, result=NUMBER),
	_b("floor", _NUM, result=NUMBER),
	_b("numbers.range", _NUM, _NUM, result=ARRAY),
	_b("to_number", _t(NUMBER, STRING, BOOLEAN, NULL), result=NUMBER),
	# strings
	_b("concat", _STR, _ARR_SET, result=STRING),
	_b("contains", _STR, _STR, result=BOOLEAN),
	_b("startswith", _STR, _STR, result=BOOLEAN),
	_b("endswith", _STR, _STR, result=BOOLEAN),
	_b("format_int", _NUM, _NUM, result=STRING),
	_b("indexof", _STR, _STR, result=NUMBER),
	_b("lower", _STR, result=STRING),
	_b("upper", _STR, result=STRING),
	_b("replace", _STR, _STR, _STR, result=STRING),
	_b("split", _STR, _STR, result=ARRAY),
	_b("sprintf", _STR, _ARR, result=STRING),
	_b("substring", _STR, _NUM, _NUM, result=STRING),
	_b("trim", _STR, _STR, result=STRING),
	_b("trim_space", _STR, result=STRING),
	_b("strings.replace_n", _OBJ, _STR, result=STRING),
	_b("regex.match", _STR, _STR, result=BOOLEAN),
	_b("glob.match", _STR, _t(ARRAY, NULL), _STR, result=BOOLEAN),
	# types
	_b("is_number", _ANY, result=BOOLEAN),
	_b("is_string", _ANY, result=BOOLEAN),
	_b("is_boolean", _ANY, result=BOOLEAN),
	_b("is_array", _ANY, result=BOOLEAN),
	_b("is_set", _ANY, result=BOOLEAN),
	_b("is_object", _ANY, result=BOOLEAN),
	_b("is_null", _ANY, result=BOOLEAN),
	_b("type_name", _ANY, result=STRING),
	# objects, arrays, sets
	_b("object.get", _OBJ, _ANY, _ANY),
	_b("object.keys", _OBJ, result=SET),
	_b("object.remove", _OBJ, _COLL, result=OBJECT),
	_b("object.union", _OBJ, _OBJ, result=OBJECT),
	_b("array.concat", _ARR, _ARR, result=ARRAY),
	_b("array.slice", _ARR, _NUM, _NUM, result=ARRAY),
	_b("intersection", _SET, result=SET),
	_b("union", _SET, result=SET),
	# encoding
	_b("json.marshal", _ANY, result=STRING),
	_b("json.unmarshal", _STR),
	_b("base64.encode", _STR, result=STRING),
	_b("base64.decode", _STR, result=STRING),
	_b("io.jwt.decode", _STR, result=ARRAY),
	# time, net, tracing
	_b("time.now_ns", result=NUMBER),
	_b("time.parse_rfc3339_ns", _STR, result=NUMBER),
	_b("net.cidr_contains", _STR, _STR, result=BOOLEAN),
	_b("trace", _STR, result=BOOLEAN),
]

BUILTINS: Dict[str, Builtin] = {b.name: b for b in _ALL}

# Infix operators are checked as the builtins they stand for.
OPERATORS: Dict[str, Builtin] = {
	"+": _b("plus", _NUM, _NUM, result=NUMBER),
	"-": _b("minus", _t(NUMBER, SET), _t(NUMBER, SET)),
	"*": _b("mul", _NUM, _NUM, result=NUMBER),
	"/": _b("div", _NUM, _NUM, result=NUMBER),
	"%": _b("rem", _NUM, _NUM, result=NUMBER),
}

COMPARISONS = frozenset({"==", "!=", "<", "<=", ">", ">="})


__all__ = [
	"ANY",
	"ARRAY",
	"BOOLEAN",
	"BUILTINS",
	"Builtin",
	"COMPARISONS",
	"NULL",
	"NUMBER",
	"OBJECT",
	"OPERATORS",
	"SET",
	"STRING",
]
