"""Command-line entry point: parse, check and run .mc files."""

from __future__ import annotations

import logging
import sys

from . import emit, parse
from .errors import MinicError, SemanticError
from .parse import ParseError
from .runtime import run
from .tokens import TokenizeError


USAGE: str = """\
minic [OPTIONS] FILE

Run a MiniC program.

Options:
  --strict       Reject constant out-of-bounds indexes and division by zero
  --entry NAME   Start execution at NAME instead of main
  --verbose      Log checker and interpreter activity to stderr
  --emit         Print the parsed program as source instead of running it
  --help         Show this help message
"""


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    filepath: str = ""
    strict = False
    entry = "main"
    verbose = False
    emit_only = False
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return 0
        elif arg == "--strict":
            strict = True
            i += 1
        elif arg == "--entry":
            if i + 1 >= len(args):
                print("minic: --entry requires a function name", file=sys.stderr)
                return 2
            entry = args[i + 1]
            i += 2
        elif arg == "--verbose":
            verbose = True
            i += 1
        elif arg == "--emit":
            emit_only = True
            i += 1
        elif arg.startswith("-"):
            print("minic: unknown flag '" + arg + "'", file=sys.stderr)
            return 2
        elif filepath == "":
            filepath = arg
            i += 1
        else:
            print("minic: unexpected argument '" + arg + "'", file=sys.stderr)
            return 2
    if filepath == "":
        print("minic: missing file argument", file=sys.stderr)
        return 2

    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )

    try:
        with open(filepath, "rb") as f:
            raw = f.read()
    except FileNotFoundError:
        print("minic: " + filepath + ": No such file or directory", file=sys.stderr)
        return 1
    except OSError as e:
        print("minic: " + filepath + ": " + str(e), file=sys.stderr)
        return 1
    try:
        source = raw.decode("utf-8")
    except ValueError:
        print("minic: " + filepath + ": invalid utf-8", file=sys.stderr)
        return 1

    try:
        program = parse(source)
    except (TokenizeError, ParseError) as e:
        print("minic: parse error: " + str(e), file=sys.stderr)
        return 1

    if emit_only:
        sys.stdout.write(emit(program))
        return 0

    try:
        result = run(
            program,
            stdin=sys.stdin.buffer.read() if not sys.stdin.isatty() else b"",
            strict=True if strict else None,
            entry=entry,
        )
    except SemanticError as e:
        print("minic: " + e.kind + ": " + str(e), file=sys.stderr)
        return 1
    except MinicError as e:
        print("minic: error: " + str(e), file=sys.stderr)
        return 1

    sys.stdout.buffer.write(result.stdout)
    sys.stderr.buffer.write(result.stderr)
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
