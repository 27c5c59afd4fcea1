# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
Lark front end for Tenet: grammar loading, terminator insertion and the
tree → AST builders.

`parse_program` raises lark's `UnexpectedInput` for grammar-level failures and
`TenetSyntaxError` for shape errors detected while building the AST; the
package-level `parse_module` converts both into diagnostics.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterator, List, Optional

from lark import Lark, Token, Tree

from tenet.core.location import Location
from tenet.parser.ast import (
	ArrayCompr,
	ArrayTerm,
	AssignLit,
	BinOp,
	Call,
	ElseClause,
	ExprLit,
	Import,
	Literal,
	Module,
	Neg,
	NotLit,
	ObjectCompr,
	ObjectTerm,
	Ref,
	Rule,
	RuleKind,
	Scalar,
	SetCompr,
	SetTerm,
	SomeLit,
	Term,
	UnifyLit,
	Var,
)

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()


class TenetSyntaxError(ValueError):
	"""
	User-facing parse error raised by the AST builders.

	The grammar accepts a few shapes that are not valid Tenet (e.g. a call on
	an indexed ref); the builder rejects them with a location so the caller
	can report a parse diagnostic instead of crashing.
	"""

	def __init__(self, message: str, *, loc: object | None) -> None:
		super().__init__(message)
		self.loc = loc


class TerminatorInserter:
	"""
	Insert `_TERMINATOR` tokens for statement/literal boundaries.

	An explicit `;` always terminates. A newline terminates only when the
	previous token can end an expression and the innermost open bracket is a
	brace (rule bodies, collection literals) or a `[ ... | ...]` comprehension
	body; inside `( )` and plain `[ ]` newlines are insignificant. A newline
	directly before `else` never terminates so `}` and `else` may sit on
	separate lines.
	"""

	always_accept = ("NEWLINE", "SEMI")

	TERMINABLE = {
		"NAME",
		"NUMBER",
		"STRING",
		"RAW_STRING",
		"TRUE",
		"FALSE",
		"NULL",
		"RPAR",
		"RSQB",
		"RBRACE",
	}

	OPENERS = {"LPAR": "(", "LSQB": "[", "LBRACE": "{"}
	CLOSERS = {"RPAR", "RSQB", "RBRACE"}

	def __init__(self) -> None:
		self._reset()

	def _reset(self) -> None:
		self.stack: List[str] = []
		self.can_terminate = False

	def process(self, stream: Iterator[Token]) -> Iterator[Token]:
		self._reset()
		pending_newline: Optional[Token] = None

		for token in stream:
			ttype = token.type

			if ttype == "NEWLINE":
				pending_newline = token
				continue

			if ttype == "SEMI":
				pending_newline = None
				yield Token.new_borrow_pos("_TERMINATOR", token.value, token)
				self.can_terminate = False
				continue

			if pending_newline is not None:
				if self._should_emit_terminator() and ttype != "ELSE":
					yield Token.new_borrow_pos("_TERMINATOR", pending_newline.value, pending_newline)
				pending_newline = None

			yield token
			self._update_stack(ttype)
			self.can_terminate = ttype in self.TERMINABLE

		if pending_newline is not None and self._should_emit_terminator():
			yield Token.new_borrow_pos("_TERMINATOR", pending_newline.value, pending_newline)

	def _update_stack(self, ttype: str) -> None:
		if ttype in self.OPENERS:
			self.stack.append(self.OPENERS[ttype])
		elif ttype in self.CLOSERS and self.stack:
			self.stack.pop()
		elif ttype == "VBAR" and self.stack and self.stack[-1] == "[":
			# Array comprehension body: literals may be newline-separated.
			self.stack[-1] = "[|"

	def _should_emit_terminator(self) -> bool:
		if not self.can_terminate:
			return False
		return not self.stack or self.stack[-1] in ("{", "[|")


_PARSER = Lark(
	_GRAMMAR_SRC,
	parser="lalr",
	lexer="basic",
	start="module",
	propagate_positions=True,
	maybe_placeholders=False,
	postlex=TerminatorInserter(),
)


class _Builder:
	"""Tree → AST conversion for one source file."""

	def __init__(self, name: str, source: str) -> None:
		self.name = name
		self.source = source
		self.lines = source.splitlines()

	def loc(self, node: Tree | Token) -> Location:
		if isinstance(node, Token):
			return Location.from_meta(self.name, node, self.lines)
		meta = node.meta
		if getattr(meta, "empty", True):
			return Location(file=self.name)
		return Location.from_meta(self.name, meta, self.lines)

	def module(self, tree: Tree) -> Module:
		package: List[str] = []
		package_loc = Location(file=self.name)
		imports: List[Import] = []
		rules: List[Rule] = []
		for child in tree.children:
			if not isinstance(child, Tree):
				continue
			kind = _name(child)
			if kind == "package_decl":
				package = [tok.value for tok in child.children if isinstance(tok, Token)]
				package_loc = self.loc(child)
			elif kind == "import_decl":
				imports.append(self.import_decl(child))
			elif kind == "default_rule":
				rules.append(self.default_rule(child))
			elif kind == "rule":
				rules.append(self.rule(child))
		return Module(
			name=self.name,
			package=package,
			imports=imports,
			rules=rules,
			package_loc=package_loc,
			source=self.source,
		)

	def import_decl(self, tree: Tree) -> Import:
		path = [tok.value for tok in tree.children if isinstance(tok, Token) and tok.type == "NAME"]
		alias = None
		for child in tree.children:
			if isinstance(child, Tree) and _name(child) == "import_alias":
				alias = _first_token(child, "NAME").value
		return Import(path=path, alias=alias, loc=self.loc(tree))

	def default_rule(self, tree: Tree) -> Rule:
		name_tok = _first_token(tree, "NAME")
		value_node = _first_tree(tree, "rule_value")
		assign, value = self.rule_value(value_node)
		return Rule(
			name=name_tok.value,
			kind=RuleKind.COMPLETE,
			body=[],
			value=value,
			default=True,
			assign=assign,
			loc=self.loc(tree),
		)

	def rule_value(self, tree: Tree) -> tuple[bool, Term]:
		op = next(child for child in tree.children if isinstance(child, Token))
		expr = next(child for child in tree.children if isinstance(child, Tree))
		return op.type == "ASSIGN", self.term(expr)

	def rule(self, tree: Tree) -> Rule:
		head = _first_tree(tree, "rule_head")
		name_tok = _first_token(head, "NAME")
		args: List[Term] = []
		key: Optional[Term] = None
		value: Optional[Term] = None
		assign = False
		has_args = False
		for child in head.children:
			if not isinstance(child, Tree):
				continue
			kind = _name(child)
			if kind == "rule_args":
				has_args = True
				args = [self.term(c) for c in child.children if isinstance(c, Tree)]
			elif kind == "rule_key":
				key = self.term(next(c for c in child.children if isinstance(c, Tree)))
			elif kind == "rule_value":
				assign, value = self.rule_value(child)

		body_node = next((c for c in tree.children if isinstance(c, Tree) and _name(c) == "body"), None)
		body = self.body(body_node) if body_node is not None else []
		else_clauses = [self.else_clause(c) for c in tree.children if isinstance(c, Tree) and _name(c) == "else_clause"]

		if has_args and key is not None:
			raise TenetSyntaxError(f"function {name_tok.value} cannot have a key", loc=self.loc(head))
		if body_node is None and value is None and key is None:
			raise TenetSyntaxError(f"rule {name_tok.value} must have a body or a value", loc=self.loc(head))

		if has_args:
			kind = RuleKind.FUNCTION
		elif key is not None and value is not None:
			kind = RuleKind.PARTIAL_OBJECT
		elif key is not None:
			kind = RuleKind.PARTIAL_SET
		else:
			kind = RuleKind.COMPLETE
		return Rule(
			name=name_tok.value,
			kind=kind,
			body=body,
			args=args,
			key=key,
			value=value,
			assign=assign,
			else_clauses=else_clauses,
			loc=self.loc(tree),
		)

	def else_clause(self, tree: Tree) -> ElseClause:
		value: Optional[Term] = None
		value_node = next((c for c in tree.children if isinstance(c, Tree) and _name(c) == "rule_value"), None)
		if value_node is not None:
			_assign, value = self.rule_value(value_node)
		body = self.body(_first_tree(tree, "body"))
		return ElseClause(value=value, body=body, loc=self.loc(tree))

	def body(self, tree: Tree) -> List[Literal]:
		return self.query(_first_tree(tree, "query"))

	def query(self, tree: Tree) -> List[Literal]:
		return [self.literal(c) for c in tree.children if isinstance(c, Tree)]

	def literal(self, tree: Tree) -> Literal:
		kind = _name(tree)
		loc = self.loc(tree)
		exprs = [c for c in tree.children if isinstance(c, Tree)]
		if kind == "expr_lit":
			return ExprLit(term=self.term(exprs[0]), loc=loc)
		if kind == "not_lit":
			return NotLit(term=self.term(exprs[0]), loc=loc)
		if kind == "some_lit":
			names = [Var(tok.value, loc=self.loc(tok)) for tok in tree.children if isinstance(tok, Token) and tok.type == "NAME"]
			return SomeLit(names=names, loc=loc)
		if kind == "assign_lit":
			return AssignLit(lhs=self.term(exprs[0]), rhs=self.term(exprs[1]), loc=loc)
		if kind == "unify_lit":
			return UnifyLit(lhs=self.term(exprs[0]), rhs=self.term(exprs[1]), loc=loc)
		raise AssertionError(f"unknown literal kind {kind}")

	def term(self, node: Tree | Token) -> Term:
		if isinstance(node, Token):
			raise AssertionError(f"unexpected bare token {node.type} in term position")
		kind = _name(node)
		loc = self.loc(node)
		children = node.children
		subtrees = [c for c in children if isinstance(c, Tree)]

		if kind == "ref":
			return self.ref(node)
		if kind == "call":
			callee = self.ref(subtrees[0])
			if isinstance(callee, Var):
				fname = callee.name
			else:
				dotted = callee.dotted()
				if dotted is None:
					raise TenetSyntaxError("invalid function name: callee must be a dotted name", loc=loc)
				fname = dotted
			return Call(name=fname, args=[self.term(c) for c in subtrees[1:]], loc=loc)
		if kind == "scalar":
			return self.scalar(children[0])
		if kind == "binop" or kind == "compare":
			op = next(c for c in children if isinstance(c, Token))
			return BinOp(op=op.value, left=self.term(subtrees[0]), right=self.term(subtrees[1]), loc=loc)
		if kind == "neg":
			operand = self.term(subtrees[0])
			if isinstance(operand, Scalar) and isinstance(operand.value, (int, float)) and not isinstance(operand.value, bool):
				return Scalar(-operand.value, loc=loc)
			return Neg(operand=operand, loc=loc)
		if kind == "array":
			return ArrayTerm(items=[self.term(c) for c in subtrees], loc=loc)
		if kind == "array_compr":
			return ArrayCompr(term=self.term(subtrees[0]), body=self.query(subtrees[1]), loc=loc)
		if kind == "empty_object":
			return ObjectTerm(items=[], loc=loc)
		if kind == "object":
			items = []
			for item in subtrees:
				kv = [c for c in item.children if isinstance(c, Tree)]
				items.append((self.term(kv[0]), self.term(kv[1])))
			return ObjectTerm(items=items, loc=loc)
		if kind == "set":
			return SetTerm(items=[self.term(c) for c in subtrees], loc=loc)
		if kind == "set_compr":
			return SetCompr(term=self.term(subtrees[0]), body=self.query(subtrees[1]), loc=loc)
		if kind == "object_compr":
			return ObjectCompr(
				key=self.term(subtrees[0]),
				value=self.term(subtrees[1]),
				body=self.query(subtrees[2]),
				loc=loc,
			)
		raise AssertionError(f"unknown term kind {kind}")

	def ref(self, tree: Tree) -> Term:
		head_tok = _first_token(tree, "NAME")
		head = Var(head_tok.value, loc=self.loc(head_tok))
		path: List[Term] = []
		for seg in tree.children:
			if not isinstance(seg, Tree):
				continue
			if _name(seg) == "dot_seg":
				tok = _first_token(seg, "NAME")
				path.append(Scalar(tok.value, loc=self.loc(tok)))
			else:
				path.append(self.term(next(c for c in seg.children if isinstance(c, Tree))))
		if not path:
			return head
		return Ref(head=head, path=path, loc=self.loc(tree))

	def scalar(self, tok: Token) -> Scalar:
		loc = self.loc(tok)
		if tok.type == "STRING":
			try:
				return Scalar(json.loads(tok.value), loc=loc)
			except ValueError as err:
				raise TenetSyntaxError(f"invalid string literal: {err}", loc=loc) from err
		if tok.type == "RAW_STRING":
			return Scalar(tok.value[1:-1], loc=loc)
		if tok.type == "NUMBER":
			text = tok.value
			if any(ch in text for ch in ".eE"):
				return Scalar(float(text), loc=loc)
			return Scalar(int(text), loc=loc)
		if tok.type == "TRUE":
			return Scalar(True, loc=loc)
		if tok.type == "FALSE":
			return Scalar(False, loc=loc)
		return Scalar(None, loc=loc)


def parse_program(source: str, name: str = "") -> Module:
	tree = _PARSER.parse(source)
	return _Builder(name, source).module(tree)


def _first_token(tree: Tree, ttype: str) -> Token:
	return next(child for child in tree.children if isinstance(child, Token) and child.type == ttype)


def _first_tree(tree: Tree, name: str) -> Tree:
	return next(child for child in tree.children if isinstance(child, Tree) and _name(child) == name)


def _name(node: Tree | Token) -> str:
	if isinstance(node, Tree):
		data = node.data
		if isinstance(data, Token):
			return data.value
		return data
	if isinstance(node, Token):
		return node.type
	return str(node)


__all__ = ["TenetSyntaxError", "TerminatorInserter", "parse_program"]
