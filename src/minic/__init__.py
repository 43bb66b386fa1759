"""Public API of the MiniC parser, checker and interpreter."""

from __future__ import annotations

from .ast import TProgram
from .check import CheckedProgram, check as check_program
from .emit import to_source
from .errors import MinicError as MinicError, RuntimeFault as RuntimeFault, SemanticError as SemanticError
from .parse import ParseError as ParseError, Parser
from .runtime import (
    DEFAULT_MAX_CALL_DEPTH,
    FAULT_EXIT_CODE as FAULT_EXIT_CODE,
    RunResult as RunResult,
    run as run_program,
)
from .tokens import TokenizeError as TokenizeError, tokenize


def _extract_pragmas(source: str) -> bool:
    """Scan leading comment lines for pragmas. Returns strict."""
    strict = False
    for line in source.split("\n"):
        stripped = line.strip()
        if stripped == "" or stripped.startswith("#"):
            continue
        if not stripped.startswith("//"):
            break
        body = stripped[2:].strip()
        if body == "pragma strict":
            strict = True
    return strict


def parse(source: str) -> TProgram:
    """Parse MiniC source code into a TProgram AST."""
    strict = _extract_pragmas(source)
    tokens = tokenize(source)
    parser = Parser(tokens)
    program = parser.parse_program()
    program.strict = strict
    return program


def check(source: str, *, strict: bool | None = None, entry: str = "main") -> CheckedProgram:
    """Parse and check MiniC source. Raises SemanticError on the first problem."""
    return check_program(parse(source), strict=strict, entry=entry)


def run(
    source: str,
    *,
    stdin: bytes = b"",
    strict: bool | None = None,
    entry: str = "main",
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH,
) -> RunResult:
    """Parse, check and run MiniC source."""
    return run_program(
        parse(source), stdin=stdin, strict=strict, entry=entry, max_call_depth=max_call_depth
    )


def emit(program: TProgram) -> str:
    """Emit a `TProgram` AST to MiniC source text."""
    return to_source(program)
