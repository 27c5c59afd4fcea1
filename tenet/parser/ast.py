# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Surface AST produced by the Tenet parser.

Terms are the value-level nodes (vars, scalars, refs, collections, calls,
comprehensions, operators). A rule body is a list of Literal nodes; each
literal wraps one expression, assignment, unification, negation or `some`
declaration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union

from tenet.core.location import Location


class Term:
	loc: Location


@dataclass
class Var(Term):
	name: str
	loc: Location = field(default_factory=Location, compare=False)


@dataclass
class Scalar(Term):
	value: Union[str, int, float, bool, None]
	loc: Location = field(default_factory=Location, compare=False)


@dataclass
class Ref(Term):
	"""
	`head.a[b].c`: `path` holds one term per segment; dotted segments are
	string Scalars.
	"""

	head: Var
	path: List[Term]
	loc: Location = field(default_factory=Location, compare=False)

	def dotted(self) -> Optional[str]:
		"""Return `head.a.b` when every segment is a string scalar, else None."""
		parts = [self.head.name]
		for seg in self.path:
			if not isinstance(seg, Scalar) or not isinstance(seg.value, str):
				return None
			parts.append(seg.value)
		return ".".join(parts)


@dataclass
class Call(Term):
	"""Function call; `name` is the dotted callee (`count`, `data.lib.f`, `lib.f`)."""

	name: str
	args: List[Term]
	loc: Location = field(default_factory=Location, compare=False)


@dataclass
class ArrayTerm(Term):
	items: List[Term]
	loc: Location = field(default_factory=Location, compare=False)


@dataclass
class SetTerm(Term):
	items: List[Term]
	loc: Location = field(default_factory=Location, compare=False)


@dataclass
class ObjectTerm(Term):
	items: List[Tuple[Term, Term]]
	loc: Location = field(default_factory=Location, compare=False)


@dataclass
class ArrayCompr(Term):
	term: Term
	body: List["Literal"]
	loc: Location = field(default_factory=Location, compare=False)


@dataclass
class SetCompr(Term):
	term: Term
	body: List["Literal"]
	loc: Location = field(default_factory=Location, compare=False)


@dataclass
class ObjectCompr(Term):
	key: Term
	value: Term
	body: List["Literal"]
	loc: Location = field(default_factory=Location, compare=False)


@dataclass
class BinOp(Term):
	"""Arithmetic (`+ - * / %`) or comparison (`== != < <= > >=`)."""

	op: str
	left: Term
	right: Term
	loc: Location = field(default_factory=Location, compare=False)


@dataclass
class Neg(Term):
	operand: Term
	loc: Location = field(default_factory=Location, compare=False)


class Literal:
	loc: Location


@dataclass
class ExprLit(Literal):
	term: Term
	loc: Location = field(default_factory=Location, compare=False)


@dataclass
class NotLit(Literal):
	term: Term
	loc: Location = field(default_factory=Location, compare=False)


@dataclass
class AssignLit(Literal):
	lhs: Term
	rhs: Term
	loc: Location = field(default_factory=Location, compare=False)


@dataclass
class UnifyLit(Literal):
	lhs: Term
	rhs: Term
	loc: Location = field(default_factory=Location, compare=False)


@dataclass
class SomeLit(Literal):
	names: List[Var]
	loc: Location = field(default_factory=Location, compare=False)


class RuleKind(str, Enum):
	COMPLETE = "complete"
	PARTIAL_SET = "partial set"
	PARTIAL_OBJECT = "partial object"
	FUNCTION = "function"


@dataclass
class ElseClause:
	value: Optional[Term]
	body: List[Literal]
	loc: Location = field(default_factory=Location, compare=False)


@dataclass
class Rule:
	"""
	One rule definition.

	`value` is None for `p { ... }` (implicitly `true`) and for partial set
	rules; `key` is set only for partial rules; `args` only for functions.
	"""

	name: str
	kind: RuleKind
	body: List[Literal]
	args: List[Term] = field(default_factory=list)
	key: Optional[Term] = None
	value: Optional[Term] = None
	default: bool = False
	assign: bool = False
	else_clauses: List[ElseClause] = field(default_factory=list)
	loc: Location = field(default_factory=Location, compare=False)


@dataclass
class Import:
	"""`import data.a.b as x`; `path` is the dotted ref (`["data", "a", "b"]`)."""

	path: List[str]
	alias: Optional[str] = None
	loc: Location = field(default_factory=Location, compare=False)

	@property
	def name(self) -> str:
		return self.alias or self.path[-1]


@dataclass
class Module:
	"""
	A parsed source unit.

	`name` is the identity key assigned by whoever loaded the module (file
	path or bundle-relative path); `package` is the declared package path.
	"""

	name: str
	package: List[str]
	imports: List[Import] = field(default_factory=list)
	rules: List[Rule] = field(default_factory=list)
	package_loc: Location = field(default_factory=Location, compare=False)
	source: Optional[str] = field(default=None, repr=False, compare=False)

	@property
	def package_path(self) -> str:
		return ".".join(["data", *self.package])


__all__ = [
	"ArrayCompr",
	"ArrayTerm",
	"AssignLit",
	"BinOp",
	"Call",
	"ElseClause",
	"ExprLit",
	"Import",
	"Literal",
	"Module",
	"Neg",
	"NotLit",
	"ObjectCompr",
	"ObjectTerm",
	"Ref",
	"Rule",
	"RuleKind",
	"Scalar",
	"SetCompr",
	"SetTerm",
	"SomeLit",
	"Term",
	"UnifyLit",
	"Var",
]
