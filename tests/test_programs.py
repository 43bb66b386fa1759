"""Program-level tests for MiniC.

Test cases live in programs/*.tests files. Format:

    === test name
    stdin: 12 34\\n
    source code here
    ---
    expected
    ---

The optional `stdin:` directive (first input line) feeds the runtime
library's read functions; `\\n` stands for a newline.

The expected section is one of:
    error: <Kind>          checking (or parsing) fails with that error kind
    fault: <Kind>          the run faults with that kind; any following
                           lines are the output produced before the fault
    anything else          the program's exact output (surrounding
                           whitespace ignored)
"""

import signal
from pathlib import Path

import pytest

from minic import FAULT_EXIT_CODE, MinicError, run as minic_run

RUN_TIMEOUT = 10
TESTS_DIR = Path(__file__).parent / "programs"


# ---------------------------------------------------------------------------
# Timeout
# ---------------------------------------------------------------------------


def _timeout_handler(signum, frame):
    raise TimeoutError("run() timed out")


signal.signal(signal.SIGALRM, _timeout_handler)


# ---------------------------------------------------------------------------
# .tests file parsing
# ---------------------------------------------------------------------------


def _read_block(lines: list[str], i: int) -> tuple[list[str], int]:
    """Collect lines up to the next `---` separator and step past it."""
    block: list[str] = []
    while i < len(lines) and not lines[i].startswith("---"):
        block.append(lines[i])
        i += 1
    if i < len(lines) and lines[i] == "---":
        i += 1
    return block, i


def parse_test_file(path: Path) -> list[tuple[str, str, bytes, str]]:
    """Parse a .tests file into (name, source, stdin, expected) tuples."""
    lines = path.read_text(encoding="utf-8").split("\n")
    result: list[tuple[str, str, bytes, str]] = []
    i = 0
    while i < len(lines):
        if not lines[i].startswith("=== "):
            i += 1
            continue
        test_name = lines[i][4:].strip()
        source_lines, i = _read_block(lines, i + 1)
        stdin = b""
        if source_lines and source_lines[0].startswith("stdin:"):
            data = source_lines[0][6:].strip().replace("\\n", "\n")
            stdin = data.encode("latin-1")
            source_lines = source_lines[1:]
        expected_lines, i = _read_block(lines, i)
        expected = "\n".join(expected_lines).strip()
        result.append((test_name, "\n".join(source_lines), stdin, expected))
    return result


def discover_tests(test_dir: Path) -> list[tuple[str, str, bytes, str]]:
    """Glob *.tests in test_dir, return (test_id, source, stdin, expected) tuples."""
    results = []
    for test_file in sorted(test_dir.glob("*.tests")):
        for name, source, stdin, expected in parse_test_file(test_file):
            results.append((f"{test_file.stem}/{name}", source, stdin, expected))
    return results


# ---------------------------------------------------------------------------
# Parametrization
# ---------------------------------------------------------------------------


def pytest_generate_tests(metafunc):
    if "program_source" in metafunc.fixturenames:
        cases = discover_tests(TESTS_DIR)
        params = [pytest.param(src, stdin, exp, id=tid) for tid, src, stdin, exp in cases]
        metafunc.parametrize("program_source,program_stdin,program_expected", params)


# ---------------------------------------------------------------------------
# Test functions
# ---------------------------------------------------------------------------


def test_program(program_source, program_stdin, program_expected):
    try:
        signal.alarm(RUN_TIMEOUT)
        try:
            result = minic_run(program_source, stdin=program_stdin)
        except MinicError as e:
            if not program_expected.startswith("error:"):
                pytest.fail(f"Unexpected {e.kind}: {e}")
            assert e.kind == program_expected[6:].strip(), str(e)
            return
    finally:
        signal.alarm(0)

    output = result.stdout.decode("latin-1").strip()
    if program_expected.startswith("error:"):
        pytest.fail(f"Expected {program_expected}, program ran with output {output!r}")
    if program_expected.startswith("fault:"):
        first, _, rest = program_expected.partition("\n")
        kind = first[6:].strip()
        if result.fault is None:
            pytest.fail(f"Expected fault {kind}, exit code {result.exit_code}")
        assert result.fault.kind == kind, str(result.fault)
        assert result.exit_code == FAULT_EXIT_CODE
        assert output == rest.strip()
        return
    if result.fault is not None:
        pytest.fail(f"Unexpected fault {result.fault.kind}: {result.fault}")
    assert result.exit_code == 0
    assert output == program_expected
