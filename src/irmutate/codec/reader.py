"""
Textual assembly parser.

A small recursive-descent parser for the format produced by
`irmutate.codec.writer`. Values and blocks may be referenced before they
are defined; references are resolved when the enclosing function closes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator

from irmutate.core import opcodes
from irmutate.core.context import Context
from irmutate.core.ir import BasicBlock, Function, Instruction, Module, Value
from irmutate.core.types import Type


class ParseError(Exception):
    """Malformed assembly."""

    def __init__(self, message: str, line: int | None = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


_TOKEN_RE = re.compile(
    r"""
      (?P<newline>\n)
    | (?P<space>[ \t\r]+)
    | (?P<comment>;[^\n]*)
    | (?P<label>[-a-zA-Z$._0-9]+):
    | (?P<local>%[-a-zA-Z$._0-9]+)
    | (?P<global>@[-a-zA-Z$._0-9]+)
    | (?P<hex>0x[0-9A-Fa-f]+)
    | (?P<number>-?[0-9]+(?:\.[0-9]*)?(?:[eE][-+]?[0-9]+)?)
    | (?P<word>[a-zA-Z_][a-zA-Z0-9_]*)
    | (?P<punct>[(){},=])
    """,
    re.VERBOSE,
)

_MODULE_ID_RE = re.compile(r";\s*ModuleID\s*=\s*'([^']*)'")


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    line: int


def tokenize(text: str) -> Iterator[Token]:
    line = 1
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise ParseError(f"unexpected character {text[pos]!r}", line)
        kind = match.lastgroup
        value = match.group(kind)
        pos = match.end()
        if kind == "newline":
            line += 1
        elif kind != "space":
            yield Token(kind, value, line)


class _ForwardRef(Value):
    """Stand-in for a value used before its definition."""

    def __init__(self, type_: Type, name: str, line: int):
        super().__init__(type_, name)
        self.line = line


class _FunctionState:
    def __init__(self, function: Function):
        self.function = function
        self.values: dict[str, Value] = {}
        self.forward: dict[str, _ForwardRef] = {}
        self.blocks: dict[str, BasicBlock] = {}
        self.block_refs: dict[str, int] = {}
        self.defined_blocks: set[str] = set()


class Parser:
    def __init__(self, text: str, context: Context, name: str = "module"):
        self.context = context
        self.name = name
        tokens = []
        for token in tokenize(text):
            if token.kind == "comment":
                match = _MODULE_ID_RE.match(token.text)
                if match and not tokens:
                    self.name = match.group(1)
                continue
            tokens.append(token)
        self.tokens = tokens
        self.pos = 0

    # -- token helpers -----------------------------------------------------

    def peek(self, offset: int = 0) -> Token | None:
        index = self.pos + offset
        return self.tokens[index] if index < len(self.tokens) else None

    def _line(self) -> int | None:
        token = self.peek()
        if token is not None:
            return token.line
        return self.tokens[-1].line if self.tokens else None

    def error(self, message: str) -> ParseError:
        return ParseError(message, self._line())

    def next(self) -> Token:
        token = self.peek()
        if token is None:
            raise self.error("unexpected end of input")
        self.pos += 1
        return token

    def accept(self, kind: str, text: str | None = None) -> Token | None:
        token = self.peek()
        if token is not None and token.kind == kind and (text is None or token.text == text):
            self.pos += 1
            return token
        return None

    def expect(self, kind: str, text: str | None = None) -> Token:
        token = self.accept(kind, text)
        if token is None:
            found = self.peek()
            wanted = repr(text) if text else kind
            got = repr(found.text) if found else "end of input"
            raise self.error(f"expected {wanted}, got {got}")
        return token

    # -- grammar -----------------------------------------------------------

    def parse(self) -> Module:
        module = Module(self.name, self.context)
        while self.peek() is not None:
            keyword = self.expect("word")
            if keyword.text == "define":
                function = self.parse_function(define=True)
            elif keyword.text == "declare":
                function = self.parse_function(define=False)
            else:
                raise ParseError(f"expected 'define' or 'declare', got {keyword.text!r}", keyword.line)
            if module.get_function(function.name) is not None:
                raise ParseError(f"redefinition of @{function.name}", keyword.line)
            module.add_function(function)
        return module

    def parse_type(self) -> Type:
        token = self.expect("word")
        try:
            return self.context.lookup_type(token.text)
        except ValueError as e:
            raise ParseError(str(e), token.line) from e

    def parse_function(self, define: bool) -> Function:
        return_type = self.parse_type()
        name = self.expect("global").text[1:]

        params = []
        self.expect("punct", "(")
        if not self.accept("punct", ")"):
            while True:
                type_ = self.parse_type()
                if not type_.is_first_class():
                    raise self.error(f"invalid parameter type {type_}")
                arg = self.accept("local")
                params.append((type_, arg.text[1:] if arg else ""))
                if self.accept("punct", ")"):
                    break
                self.expect("punct", ",")

        function = Function(name, return_type, params)
        if not define:
            return function

        state = _FunctionState(function)
        for arg in function.arguments:
            if arg.name:
                self._define(state, arg.name, arg)

        self.expect("punct", "{")
        if self.peek() is None or self.peek().kind != "label":
            raise self.error("expected a block label")
        block = None
        while not self.accept("punct", "}"):
            label = self.accept("label")
            if label is not None:
                block = self._define_block(state, label)
                continue
            block.append(self.parse_instruction(state))

        self._resolve(state)
        return function

    def _define(self, state: _FunctionState, name: str, value: Value):
        if name in state.values:
            raise self.error(f"redefinition of %{name}")
        ref = state.forward.pop(name, None)
        if ref is not None and ref.type is not value.type:
            raise ParseError(f"%{name} used as {ref.type} but defined as {value.type}", ref.line)
        state.values[name] = value

    def _define_block(self, state: _FunctionState, label: Token) -> BasicBlock:
        name = label.text
        if name in state.defined_blocks:
            raise ParseError(f"redefinition of block '{name}'", label.line)
        state.defined_blocks.add(name)
        block = state.blocks.setdefault(name, BasicBlock(name))
        return state.function.append_block(block)

    def _block_ref(self, state: _FunctionState) -> BasicBlock:
        self.expect("word", "label")
        token = self.expect("local")
        name = token.text[1:]
        state.block_refs.setdefault(name, token.line)
        return state.blocks.setdefault(name, BasicBlock(name))

    def _resolve(self, state: _FunctionState):
        for name, line in state.block_refs.items():
            if name not in state.defined_blocks:
                raise ParseError(f"use of undefined block '{name}'", line)
        for name, ref in state.forward.items():
            raise ParseError(f"use of undefined value %{name}", ref.line)
        for inst in state.function.instructions():
            for i, op in enumerate(inst.operands):
                if isinstance(op, _ForwardRef):
                    inst.operands[i] = state.values[op.name]

    def parse_value(self, state: _FunctionState, type_: Type) -> Value:
        token = self.next()
        ctx = self.context
        try:
            if token.kind == "local":
                name = token.text[1:]
                if name in state.values:
                    value = state.values[name]
                    if value.type is not type_:
                        raise ParseError(f"%{name} is {value.type}, expected {type_}", token.line)
                    return value
                ref = state.forward.get(name)
                if ref is None:
                    ref = state.forward[name] = _ForwardRef(type_, name, token.line)
                elif ref.type is not type_:
                    raise ParseError(f"%{name} used with conflicting types", token.line)
                return ref
            if token.kind == "number":
                if type_.is_integer() and re.fullmatch(r"-?[0-9]+", token.text):
                    return ctx.get_int(type_, int(token.text))
                if type_.is_float():
                    return ctx.get_float(type_, float(token.text))
            elif token.kind == "hex":
                if type_.is_float():
                    return ctx.get_float_bits(type_, int(token.text, 16))
                if type_.is_integer():
                    return ctx.get_int(type_, int(token.text, 16))
            elif token.kind == "word":
                if token.text in ("true", "false") and type_.is_integer(1):
                    return ctx.get_bool(token.text == "true")
                if token.text == "undef":
                    return ctx.get_undef(type_)
                if token.text == "null" and type_.is_pointer():
                    return ctx.get_null(type_)
        except ValueError as e:
            raise ParseError(str(e), token.line) from e
        raise ParseError(f"invalid {type_} value {token.text!r}", token.line)

    def parse_typed_value(self, state: _FunctionState) -> Value:
        type_ = self.parse_type()
        return self.parse_value(state, type_)

    def _parse_flags(self, opcode: str) -> set[str]:
        allowed = set(opcodes.legal_flags(opcode))
        if opcode == "select":
            allowed = set(opcodes.FAST_MATH_FLAGS)
        flags = set()
        while True:
            token = self.peek()
            if token is None or token.kind != "word" or token.text not in allowed:
                return flags
            flags.add(self.next().text)

    def parse_instruction(self, state: _FunctionState) -> Instruction:
        name = None
        if self.peek() and self.peek().kind == "local":
            name = self.next().text[1:]
            self.expect("punct", "=")

        token = self.expect("word")
        op = token.text
        if op not in opcodes.ALL_OPCODES:
            raise ParseError(f"unknown instruction '{op}'", token.line)

        inst = self._parse_body(state, op)
        inst.name = name or ""

        if not inst.flags <= set(opcodes.legal_flags(op, inst.type)):
            raise ParseError(f"illegal flags on {op}", token.line)
        if inst.type.is_void():
            if name is not None:
                raise ParseError(f"cannot name a void {op}", token.line)
        elif name is not None:
            self._define(state, name, inst)
        return inst

    def _parse_body(self, state: _FunctionState, op: str) -> Instruction:
        ctx = self.context
        flags = self._parse_flags(op)

        if op in opcodes.INT_BINARY_OPS or op in opcodes.FLOAT_BINARY_OPS:
            type_ = self.parse_type()
            lhs = self.parse_value(state, type_)
            self.expect("punct", ",")
            rhs = self.parse_value(state, type_)
            return Instruction(op, type_, [lhs, rhs], flags=flags)

        if op in opcodes.FLOAT_UNARY_OPS or op == "freeze":
            value = self.parse_typed_value(state)
            return Instruction(op, value.type, [value], flags=flags)

        if op in opcodes.COMPARE_OPS:
            pred = self.expect("word")
            if pred.text not in opcodes.legal_predicates(op):
                raise ParseError(f"invalid {op} predicate '{pred.text}'", pred.line)
            lhs = self.parse_typed_value(state)
            self.expect("punct", ",")
            rhs = self.parse_value(state, lhs.type)
            return Instruction(op, ctx.bool_type(), [lhs, rhs], flags=flags, predicate=pred.text)

        if op in opcodes.CAST_OPS:
            value = self.parse_typed_value(state)
            self.expect("word", "to")
            return Instruction(op, self.parse_type(), [value])

        if op == "select":
            cond = self.parse_typed_value(state)
            self.expect("punct", ",")
            if_true = self.parse_typed_value(state)
            self.expect("punct", ",")
            if_false = self.parse_typed_value(state)
            return Instruction(op, if_true.type, [cond, if_true, if_false], flags=flags)

        if op == "alloca":
            return Instruction(op, ctx.pointer_type(), element_type=self.parse_type())

        if op == "load":
            type_ = self.parse_type()
            self.expect("punct", ",")
            address = self.parse_typed_value(state)
            return Instruction(op, type_, [address], element_type=type_)

        if op == "store":
            value = self.parse_typed_value(state)
            self.expect("punct", ",")
            address = self.parse_typed_value(state)
            return Instruction(op, ctx.void_type(), [value, address])

        if op == "getelementptr":
            element_type = self.parse_type()
            self.expect("punct", ",")
            base = self.parse_typed_value(state)
            self.expect("punct", ",")
            index = self.parse_typed_value(state)
            return Instruction(op, ctx.pointer_type(), [base, index], flags=flags, element_type=element_type)

        if op == "ret":
            if self.accept("word", "void"):
                return Instruction(op, ctx.void_type())
            return Instruction(op, ctx.void_type(), [self.parse_typed_value(state)])

        if op == "br":
            token = self.peek()
            if token is not None and token.kind == "word" and token.text == "label":
                return Instruction(op, ctx.void_type(), successors=[self._block_ref(state)])
            cond = self.parse_typed_value(state)
            self.expect("punct", ",")
            if_true = self._block_ref(state)
            self.expect("punct", ",")
            if_false = self._block_ref(state)
            return Instruction(op, ctx.void_type(), [cond], successors=[if_true, if_false])

        # unreachable
        return Instruction(op, ctx.void_type())


def parse_assembly(text: str, context: Context, name: str = "module") -> Module:
    """
    Parse textual assembly into a new module owned by `context`.

    Raises:
        ParseError: On any malformed input
    """
    return Parser(text, context, name).parse()
