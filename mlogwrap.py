#!/usr/bin/env python3
"""mlogwrap: a very slightly higher level wrapper around mlog.

Source files get named labels, subroutines (``routine name:`` ...
``endroutine``, called with ``gosub`` and left with ``return``) and
``goto``. The output is plain mlog: numbered instructions whose jumps
point at absolute instruction indices.
"""
import argparse
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ply.lex import lex, LexToken

# ============================================================
# Diagnostics
# ============================================================

@dataclass
class Source:
    path: str
    text: str

    @staticmethod
    def from_path(path: str) -> "Source":
        with open(path, "r", encoding="utf-8") as f:
            txt = f.read()
        return Source(path=path, text=txt)

@dataclass
class Diag:
    kind: str  # "error" | "warning" | "note"
    msg: str
    src: Source
    line: Optional[int] = None
    hint: Optional[str] = None

    def format(self, use_color: bool = True) -> str:
        if use_color:
            RESET, BOLD, RED, YELLOW, BLUE, CYAN = "\033[0m", "\033[1m", "\033[31m", "\033[33m", "\033[34m", "\033[36m"
            kind_color = f"{BOLD}{RED}" if self.kind == "error" else (f"{BOLD}{YELLOW}" if self.kind == "warning" else f"{BOLD}{BLUE}")
        else:
            RESET = BOLD = RED = YELLOW = BLUE = CYAN = kind_color = ""

        # file:line: for positioned errors, file: alone when we ran off the end
        where = f"{self.src.path}:{self.line}:" if self.line is not None else f"{self.src.path}:"
        result = f"{BOLD}{where}{RESET} {kind_color}{self.kind}:{RESET} {self.msg}"
        if self.hint:
            result += f"\n{BOLD}{CYAN}note:{RESET} {self.hint}"
        return result

def report(diag: Diag):
    print(diag.format(use_color=sys.stderr.isatty()), file=sys.stderr)

class CompileError(Exception):
    """A fatal problem with the program being compiled.

    ``line`` is None for errors found at end of input.
    """

    def __init__(self, msg: str, line: Optional[int] = None, hint: Optional[str] = None):
        super().__init__(msg)
        self.msg = msg
        self.line = line
        self.hint = hint

    def diag(self, src: Source) -> Diag:
        return Diag("error", self.msg, src, self.line, self.hint)

class LexicalError(CompileError):
    """A character no token rule matches."""

class StructureError(CompileError):
    """Tokens in the wrong place: missing operands, stray words, bad sub-instructions."""

class ResolveError(CompileError):
    """A jump or call target that isn't declared, or is declared as the other kind."""

class SemanticError(CompileError):
    pass

# ============================================================
# Lexer
# ============================================================

INSTRUCTION_WORDS = (
    "write", "read", "draw", "drawflush", "print", "printflush", "getlink",
    "control", "radar", "sensor", "set", "op", "end", "jump", "ubind",
    "ucontrol", "uradar", "ulocate", "noop", "goto", "gosub", "return",
)

SUB_INSTRUCTION_WORDS = (
    # draw
    "clear", "color", "stroke", "line", "rect", "lineRect", "poly", "linePoly",
    "triangle", "image",
    # control
    "enabled", "shoot", "shootp", "configure",
    # ucontrol
    "idle", "stop", "move", "approach", "boost", "pathfind", "target", "targetp",
    "itemDrop", "itemTake", "payDrop", "payTake", "mine", "flag", "build",
    "getBlock", "within",
    # ulocate
    "ore", "building", "spawn",
)

# math operations, also used as jump comparisons
OPERATORS = (
    "add", "sub", "mul", "div", "idiv", "mod", "pow",
    "equal", "notEqual", "strictEqual", "not", "land",
    "lessThan", "lessThanEq", "greaterThan", "greaterThanEq",
    "shl", "shr", "xor", "and", "or", "flip",
    "max", "min", "angle", "len", "noise", "abs", "log", "log10",
    "sin", "cos", "tan", "floor", "ceil", "sqrt", "rand",
)

reserved = {w: w.upper() for w in INSTRUCTION_WORDS}
reserved.update({w: "SUB_" + w.upper() for w in SUB_INSTRUCTION_WORDS})
reserved.update({w: "OPERATOR" for w in OPERATORS})
reserved.update({
    "true": "BOOL",
    "false": "BOOL",
    "always": "ALWAYS",
    "endroutine": "ENDROUTINE",
})

tokens = (
    "ROUTINE", "LABEL", "FLOAT", "INT", "STRING", "SYSVAR", "NAME", "NEWLINE",
) + tuple(sorted(set(reserved.values())))

t_ignore = " \t\r\f"
t_ignore_COMMENT = r"\#[^\n]*"

# Declarations must come before NAME so the trailing ':' is seen
def t_ROUTINE(t):
    r'routine[ \t]+[A-Za-z0-9_]+:'
    t.value = t.value[len("routine"):-1].strip()
    return t

def t_LABEL(t):
    r'[A-Za-z0-9_]+:'
    t.value = t.value[:-1]
    return t

def t_FLOAT(t):
    r'-?\d+\.\d+'
    return t

def t_INT(t):
    r'-?\d+'
    return t

def t_STRING(t):
    r'"([^"\\\n]|\\.)*"'
    # kept verbatim, quotes and escapes included; mlog reads it back as is
    return t

def t_SYSVAR(t):
    r'@[A-Za-z][A-Za-z0-9-]*'
    return t

def t_NAME(t):
    r'[A-Za-z_][A-Za-z0-9_]*'
    t.type = reserved.get(t.value, "NAME")
    return t

def t_NEWLINE(t):
    r'\n'
    t.lexer.lineno += 1
    return t

def t_error(t):
    # surfaced as a token; TokenStream turns it into a LexicalError
    t.type = "ERROR"
    t.value = t.value[0]
    t.lexer.skip(1)
    return t

_master_lexer = None

def make_lexer():
    global _master_lexer
    if _master_lexer is None:
        _master_lexer = lex()
    return _master_lexer.clone()

def describe(tok: Optional[LexToken]) -> str:
    if tok is None:
        return "EOF"
    if tok.type == "NEWLINE":
        return "newline"
    if tok.type == "LABEL":
        return f"{tok.value}:"
    if tok.type == "ROUTINE":
        return f"routine {tok.value}:"
    return str(tok.value)

class TokenStream:
    """One forward pass over a source file's tokens. No push-back."""

    def __init__(self, src: Source):
        self.src = src
        self.lexer = make_lexer()
        self.lexer.input(src.text)
        self.line = 1
        # True once the last token pulled ended a line (NEWLINE or EOF)
        self.at_line_end = True

    def next(self) -> Optional[LexToken]:
        tok = self.lexer.token()
        if tok is None:
            self.at_line_end = True
            return None
        self.line = tok.lineno
        self.at_line_end = tok.type == "NEWLINE"
        if tok.type == "ERROR":
            raise LexicalError(f"unrecognized character {tok.value!r}", self.line)
        return tok

    def where(self, tok: Optional[LexToken]) -> Optional[int]:
        return None if tok is None else self.line

    def end_line(self):
        """Require the current line to be over; one statement per line."""
        if self.at_line_end:
            return
        tok = self.next()
        if tok is not None and tok.type != "NEWLINE":
            raise StructureError(f"unexpected token {describe(tok)}", self.line)

    def __iter__(self):
        while True:
            tok = self.next()
            if tok is None:
                return
            yield tok

# ============================================================
# Values
# ============================================================

class Kind(Enum):
    BOOL = "bool"
    FLOAT = "float"
    INT = "int"
    STRING = "string"
    NAME = "name"
    VARIABLE = "variable"
    ANY = "any"
    OPERATOR = "op"

LITERALS = {
    "BOOL": Kind.BOOL,
    "FLOAT": Kind.FLOAT,
    "INT": Kind.INT,
    "STRING": Kind.STRING,
}

@dataclass(frozen=True)
class Slot:
    name: str
    kind: Kind
    subkind: Optional[str] = None  # content type for NAME slots, e.g. "Building"
    writes: bool = False           # the instruction stores its result here
    optional: bool = False

    def kind_name(self) -> str:
        if self.kind is Kind.NAME:
            return f"name ({self.subkind})"
        return self.kind.value

    def accepts(self, tok: LexToken, variables: List[str]) -> bool:
        if self.kind is Kind.OPERATOR:
            return tok.type == "OPERATOR"
        if tok.type == "SYSVAR":
            return True
        if tok.type == "NAME":
            # known variables go anywhere, whatever the slot claims to hold
            if tok.value in variables:
                return True
            return self.kind in (Kind.NAME, Kind.ANY)
        lit = LITERALS.get(tok.type)
        if lit is None:
            return False
        return self.kind is lit or self.kind is Kind.ANY

    def __str__(self) -> str:
        extra = ", optional" if self.optional else ""
        return f"{self.name} ({self.kind_name()}{extra})"

def read_value(slot: Slot, stream: TokenStream, variables: List[str]) -> Optional[str]:
    """Consume one operand for ``slot`` and return its text.

    Returns None only for an optional slot left empty at end of line or
    input; everything else that doesn't fit raises StructureError.
    """
    tok = stream.next()
    if tok is None or tok.type == "NEWLINE":
        if slot.optional:
            return None
        if tok is None:
            raise StructureError(f"expected {slot.kind_name()} or variable, got EOF")
    elif slot.accepts(tok, variables):
        return str(tok.value)
    raise StructureError(
        f"expected {slot.kind_name()} or variable, got {describe(tok)} (maybe you forgot to create a variable?)",
        stream.line)

# Helpers to build slots
def B(name): return Slot(name, Kind.BOOL)
def F(name): return Slot(name, Kind.FLOAT)
def I(name): return Slot(name, Kind.INT)
def S(name): return Slot(name, Kind.STRING)
def N(name, subkind): return Slot(name, Kind.NAME, subkind)
def V(name): return Slot(name, Kind.VARIABLE)
def OUT(name): return Slot(name, Kind.VARIABLE, writes=True)
def A(name, optional=False): return Slot(name, Kind.ANY, optional=optional)

# ============================================================
# Symbols
# ============================================================

@dataclass
class Symbols:
    labels: Dict[str, int] = field(default_factory=dict)
    routines: Dict[str, int] = field(default_factory=dict)
    variables: List[str] = field(default_factory=list)  # first-seen order
    size: int = 0
    warnings: List[Diag] = field(default_factory=list)

    def add_variable(self, name: str):
        if name not in self.variables:
            self.variables.append(name)

    def label_index(self, name: str, line: Optional[int]) -> int:
        if name in self.labels:
            return self.labels[name]
        if name in self.routines:
            raise ResolveError(f"{name} is declared as a subroutine, not a label!", line)
        raise ResolveError(f"couldn't find label {name}", line)

    def routine_index(self, name: str, line: Optional[int]) -> int:
        if name in self.routines:
            return self.routines[name]
        if name in self.labels:
            raise ResolveError(f"{name} is declared as a label, not a subroutine!", line)
        raise ResolveError(f"couldn't find routine {name}", line)

def return_var(routine: str) -> str:
    return f"{routine}Return"

@dataclass
class EmitContext:
    symbols: Symbols
    debug: bool = False
    routine: Optional[str] = None  # subroutine currently open
    emitted: int = 0               # lines emitted before this statement

# ============================================================
# Instructions
# ============================================================
#
# Every descriptor has:
#   token             leading token type
#   emits             number of mlog lines a statement produces
#   layout(stream)    operand slots of the statement, as pass 1 walks them
#   compile(stream, ctx) -> List[str]

def read_operands(slots: Tuple[Slot, ...], stream: TokenStream, ctx: EmitContext, definition: str) -> List[str]:
    elements = []
    try:
        for slot in slots:
            value = read_value(slot, stream, ctx.symbols.variables)
            if value is not None:
                elements.append(value)
    except StructureError as err:
        err.hint = f"instruction is defined as: {definition}"
        raise
    return elements

@dataclass
class Instruction:
    name: str
    token: str
    args: Tuple[Slot, ...] = ()
    group: Optional[str] = None  # for sub-instructions, only used in messages

    emits = 1

    def layout(self, stream: TokenStream) -> Tuple[Slot, ...]:
        return self.args

    def compile(self, stream: TokenStream, ctx: EmitContext) -> List[str]:
        return [" ".join([self.name] + read_operands(self.args, stream, ctx, str(self)))]

    def __str__(self) -> str:
        head = f"{self.group} {self.name}" if self.group else self.name
        return " ".join([head] + [str(a) for a in self.args])

@dataclass
class InstructionGroup:
    name: str
    token: str
    members: Tuple[Instruction, ...]

    emits = 1

    def __post_init__(self):
        self._by_token: Dict[str, Instruction] = {}
        for m in self.members:
            self._by_token.setdefault(m.token, m)

    def select(self, stream: TokenStream) -> Instruction:
        tok = stream.next()
        if tok is None:
            raise StructureError("expected sub-instruction name, got EOF")
        if tok.type == "NEWLINE":
            raise StructureError(f"unexpected newline after instruction \"{self.name}\"", stream.line)
        member = self._by_token.get(tok.type)
        if member is None:
            raise StructureError(f"unknown sub-instruction {describe(tok)} for \"{self.name}\"", stream.line,
                                 hint=f"{self.name} takes one of: {', '.join(m.name for m in self.members)}")
        return member

    def layout(self, stream: TokenStream) -> Tuple[Slot, ...]:
        return self.select(stream).args

    def compile(self, stream: TokenStream, ctx: EmitContext) -> List[str]:
        member = self.select(stream)
        return [f"{self.name} {line}" for line in member.compile(stream, ctx)]

class CustomInstruction:
    """Instructions whose operands don't fit a plain slot list."""

    name = ""
    token = ""
    emits = 1
    slots: Tuple[Slot, ...] = ()
    definition = ""

    def layout(self, stream: TokenStream) -> Tuple[Slot, ...]:
        return self.slots

    def compile(self, stream: TokenStream, ctx: EmitContext) -> List[str]:
        raise NotImplementedError

    def expect_name(self, stream: TokenStream, what: str) -> str:
        tok = stream.next()
        if tok is None or tok.type != "NAME":
            raise StructureError(f"expected {what}, got {describe(tok)}", stream.where(tok),
                                 hint=f"instruction is defined as: {self.definition}")
        return tok.value

    def __str__(self) -> str:
        return self.definition

# Comparison operand used when a jump leaves out its second value; it is
# also what mlog itself assumes for a missing one.
JUMP_PLACEHOLDER = "false"

class Jump(CustomInstruction):
    name = "jump"
    token = "JUMP"
    operands = (A("a"), A("b", optional=True))
    definition = "jump label (label) comp (op) a (any) b (any, optional)\nor: jump label (label) always"

    def compile(self, stream: TokenStream, ctx: EmitContext) -> List[str]:
        label = self.expect_name(stream, "label")
        elements = ["jump", str(ctx.symbols.label_index(label, stream.line))]
        tok = stream.next()
        if tok is not None and tok.type == "OPERATOR":
            elements.append(tok.value)
            operands = read_operands(self.operands, stream, ctx, self.definition)
            if len(operands) == 1:
                operands.append(JUMP_PLACEHOLDER)
            elements.extend(operands)
        elif tok is not None and tok.type == "ALWAYS":
            elements.append("always")
        else:
            raise StructureError(f"expected comparison, got {describe(tok)}", stream.where(tok),
                                 hint=f"instruction is defined as: {self.definition}")
        if ctx.debug:
            elements.append(f"# jump to {label}")
        return [" ".join(elements)]

class Goto(CustomInstruction):
    name = "goto"
    token = "GOTO"
    definition = "goto label (label)"

    def compile(self, stream: TokenStream, ctx: EmitContext) -> List[str]:
        label = self.expect_name(stream, "label")
        line = f"jump {ctx.symbols.label_index(label, stream.line)} always"
        if ctx.debug:
            line += f" # goto {label}"
        return [line]

class Gosub(CustomInstruction):
    name = "gosub"
    token = "GOSUB"
    emits = 2
    definition = "gosub routine (routine)"

    def compile(self, stream: TokenStream, ctx: EmitContext) -> List[str]:
        routine = self.expect_name(stream, "routine")
        # there is no call stack; a routine calling itself would lose its way back
        if routine == ctx.routine:
            raise SemanticError("can't call the current subroutine!", stream.line)
        target = ctx.symbols.routine_index(routine, stream.line)
        jump = f"jump {target} always"
        if ctx.debug:
            jump += f" # gosub {routine}"
        # return lands right after the jump below
        return [f"set {return_var(routine)} {ctx.emitted + 2}", jump]

class Return(CustomInstruction):
    name = "return"
    token = "RETURN"
    definition = "return"

    def compile(self, stream: TokenStream, ctx: EmitContext) -> List[str]:
        if ctx.routine is None:
            raise SemanticError("can't return outside of a subroutine!", stream.line)
        line = f"set @counter {return_var(ctx.routine)}"
        if ctx.debug:
            line += f" # return from {ctx.routine}"
        return [line]

class Op(CustomInstruction):
    name = "op"
    token = "OP"
    slots = (Slot("op", Kind.OPERATOR), OUT("result"), A("a"), A("b", optional=True))
    definition = "op op (op) result (variable) a (any) b (any, optional)"

    def compile(self, stream: TokenStream, ctx: EmitContext) -> List[str]:
        return [" ".join(["op"] + read_operands(self.slots, stream, ctx, self.definition))]

def inst(name, *args):
    return Instruction(name, name.upper(), tuple(args))

def group(name, *members):
    return InstructionGroup(name, name.upper(), tuple(
        Instruction(m.name, "SUB_" + m.name.upper(), m.args, name) for m in members))

def sub(name, *args):
    # group() fills in the token and owner
    return Instruction(name, "", tuple(args))

def build_catalog() -> List:
    return [
        inst("write", F("value"), N("cell", "Building"), I("address")),
        inst("read", OUT("store"), N("cell", "Building"), I("address")),
        group("draw",
            sub("clear", I("red"), I("green"), I("blue")),
            sub("color", I("red"), I("green"), I("blue")),
            sub("stroke", I("width")),
            sub("line", I("x1"), I("y1"), I("x2"), I("y2")),
            sub("rect", I("x"), I("y"), I("w"), I("h")),
            sub("lineRect", I("x"), I("y"), I("w"), I("h")),
            sub("poly", I("x"), I("y"), I("sides"), F("radius"), F("rotation")),
            sub("linePoly", I("x"), I("y"), I("sides"), F("radius"), F("rotation")),
            sub("triangle", I("x1"), I("y1"), I("x2"), I("y2"), I("x3"), I("y3")),
            sub("image", I("x"), I("y"), N("image", "UnlockableContent"), F("size"), F("rotation")),
        ),
        inst("drawflush", N("display", "Building")),
        inst("print", S("text")),
        inst("printflush", N("msgblock", "Building")),
        inst("getlink", OUT("store"), I("index")),
        group("control",
            sub("enabled", N("target", "Building"), B("enabled")),
            sub("shoot", N("turret", "Building"), F("x"), F("y"), B("shoot")),
            sub("shootp", N("turret", "Building"), N("target", "Healthc"), B("shoot")),
            sub("configure", N("build", "Building"), N("config", "Content")),
            sub("color", N("illuminator", "Building"), I("red"), I("green"), I("blue")),
        ),
        inst("radar", N("turret", "Ranged"), N("prop1", "TargetType"), N("prop2", "TargetType"),
             N("prop3", "TargetType"), B("order"), OUT("output")),
        inst("sensor", OUT("store"), N("block", "Building"), N("sense", "Sensable")),
        inst("set", OUT("varname"), A("value")),
        inst("end"),
        inst("ubind", N("type", "UnitType")),
        group("ucontrol",
            sub("idle"),
            sub("stop"),
            sub("move", F("x"), F("y")),
            sub("approach", F("x"), F("y"), F("radius")),
            sub("boost", B("enable")),
            sub("pathfind"),
            sub("target", F("x"), F("y"), B("shoot")),
            sub("targetp", N("target", "Healthc"), B("shoot")),
            sub("itemDrop", N("to", "Building"), I("amount")),
            sub("itemTake", N("from", "Building"), N("item", "Item"), I("amount")),
            sub("payDrop"),
            sub("payTake", B("takeUnits")),
            sub("mine", F("x"), F("y")),
            sub("flag", F("flag")),
            sub("build", F("x"), F("y"), N("block", "Block"), I("rotation"), V("config")),
            sub("getBlock", F("x"), F("y"), OUT("block"), OUT("building")),
            sub("within", F("x"), F("y"), F("radius"), OUT("result")),
        ),
        inst("uradar", N("a", "Target"), N("b", "Target"), N("c", "Target"), N("sort", "SortType"),
             B("unused"), B("order"), OUT("result")),
        group("ulocate",
            sub("ore", N("ore", "Item"), OUT("outX"), OUT("outY"), OUT("outFound")),
            sub("building", N("type", "BlockFlag"), B("enemy"), OUT("outX"), OUT("outY"),
                OUT("outFound"), OUT("outBuilding")),
            sub("spawn", OUT("outX"), OUT("outY"), OUT("outFound")),
        ),
        inst("noop"),
        Jump(),
        Goto(),
        Gosub(),
        Op(),
        Return(),
    ]

class Catalog:
    def __init__(self, entries: List):
        self.entries = entries
        self._by_token: Dict[str, object] = {}
        for e in entries:
            self._by_token.setdefault(e.token, e)

    def lookup(self, token_type: str):
        return self._by_token.get(token_type)

    def __contains__(self, token_type: str) -> bool:
        return token_type in self._by_token

CATALOG = Catalog(build_catalog())

# ============================================================
# Pass 1: labels, routines, variables
# ============================================================

def _walk_writes(slots: Tuple[Slot, ...], stream: TokenStream, symbols: Symbols, owner: str):
    """Record the variables a statement writes."""
    last = max((i for i, s in enumerate(slots) if s.writes), default=-1)
    for slot in slots[:last + 1]:
        tok = stream.next()
        if tok is None or tok.type == "NEWLINE":
            # pass 2 reports the missing operand
            return
        if not slot.writes:
            continue
        if tok.type == "NAME":
            symbols.add_variable(tok.value)
        elif tok.type != "SYSVAR":
            raise StructureError(f"unexpected token {describe(tok)} after {owner}", stream.line)

def _skip_operands(stream: TokenStream):
    """Pass over the rest of a statement. A declaration can't share its line."""
    while not stream.at_line_end:
        tok = stream.next()
        if tok is not None and tok.type in ("LABEL", "ROUTINE"):
            raise StructureError(f"unexpected token {describe(tok)}", stream.line)

def collect_symbols(src: Source, catalog: Catalog = CATALOG) -> Symbols:
    symbols = Symbols()
    stream = TokenStream(src)
    count = 0
    for tok in stream:
        kind = tok.type
        if kind in ("NEWLINE", "ENDROUTINE"):
            continue
        if kind in ("LABEL", "ROUTINE"):
            table, what = (symbols.labels, "label") if kind == "LABEL" else (symbols.routines, "routine")
            if tok.value in table:
                symbols.warnings.append(Diag("warning", f"{what} {tok.value} redeclared; the later one wins", src, stream.line))
            table[tok.value] = count
            continue
        desc = catalog.lookup(kind)
        if desc is None:
            raise StructureError(f"unexpected token {describe(tok)}", stream.line)
        count += desc.emits
        _walk_writes(desc.layout(stream), stream, symbols, tok.value)
        _skip_operands(stream)
    symbols.size = count
    return symbols

# ============================================================
# Pass 2: code
# ============================================================

def emit_code(src: Source, symbols: Symbols, debug: bool = False, catalog: Catalog = CATALOG) -> List[str]:
    stream = TokenStream(src)
    ctx = EmitContext(symbols, debug)
    code: List[str] = []
    pending: Optional[str] = None  # declaration to mention in a debug comment
    for tok in stream:
        kind = tok.type
        if kind == "NEWLINE":
            continue
        if kind == "LABEL":
            pending = f"label {tok.value}"
            continue
        if kind == "ROUTINE":
            pending = f"subroutine {tok.value}"
            ctx.routine = tok.value
            continue
        if kind == "ENDROUTINE":
            ctx.routine = None
            continue
        desc = catalog.lookup(kind)
        if desc is None:
            raise StructureError(f"unexpected token {describe(tok)}", stream.line)
        ctx.emitted = len(code)
        lines = desc.compile(stream, ctx)
        stream.end_line()
        if len(lines) != desc.emits:
            raise CompileError(f"internal: {tok.value} emitted {len(lines)} lines, expected {desc.emits}", stream.line)
        if pending is not None:
            if debug:
                lines[-1] = f"{lines[-1]} # {pending}"
            pending = None
        code.extend(lines)
    return code

@dataclass
class Assembly:
    symbols: Symbols
    lines: List[str]

    @property
    def text(self) -> str:
        return "\n".join(self.lines + [""])

def compile_source(src: Source, debug: bool = False) -> Assembly:
    symbols = collect_symbols(src)
    return Assembly(symbols, emit_code(src, symbols, debug))

def compile_text(text: str, debug: bool = False, path: str = "<string>") -> str:
    return compile_source(Source(path, text), debug).text

# ============================================================
# Driver
# ============================================================

STDOUT = "stdout"

@dataclass
class Options:
    input: str
    output: str = STDOUT
    debug_comments: bool = False

def compile_file(opts: Options) -> int:
    try:
        src = Source.from_path(opts.input)
    except (OSError, UnicodeDecodeError) as e:
        report(Diag("error", f"couldn't read input: {e}", Source(opts.input, "")))
        return 1

    try:
        asm = compile_source(src, opts.debug_comments)
    except CompileError as err:
        report(err.diag(src))
        return 1

    for w in asm.symbols.warnings:
        report(w)

    if opts.output == STDOUT:
        print(asm.text)
    else:
        try:
            with open(opts.output, "w", encoding="utf-8") as f:
                f.write(asm.text)
        except OSError as e:
            report(Diag("error", f"couldn't write output: {e}", Source(opts.output, "")))
            return 1
        print(f"Saved to {opts.output}")
    return 0

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="mlogwrap",
        description="very slightly higher level wrapper around mlog. makes jump statements "
                    "actually usable and will yell at you if you make a mistake")
    parser.add_argument("-i", "--input", required=True, help="input file")
    parser.add_argument("-o", "--output", default=STDOUT,
                        help="output file (setting to stdout will send output to stdout)")
    parser.add_argument("-d", "--debugcomments", action="store_true",
                        help="add debug comments to generated code")
    args = parser.parse_args(argv)
    return compile_file(Options(args.input, args.output, args.debugcomments))

if __name__ == "__main__":
    sys.exit(main())
