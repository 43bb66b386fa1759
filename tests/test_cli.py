"""CLI tests for the minic entry point."""

import io
import sys

import pytest

from minic.cli import main


@pytest.fixture
def program(tmp_path):
    def write(source: str) -> str:
        path = tmp_path / "prog.mc"
        path.write_text(source)
        return str(path)

    return write


@pytest.fixture(autouse=True)
def empty_stdin(monkeypatch):
    monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(b"")))


def test_runs_program(program, capsys):
    path = program("int main() { print_s(\"hello\\n\"); return 0; }")
    assert main([path]) == 0
    assert capsys.readouterr().out == "hello\n"


def test_stdin_is_forwarded(program, capsys, monkeypatch):
    monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(b"5 6")))
    path = program("int main() { print_i(read_i() + read_i()); return 0; }")
    assert main([path]) == 0
    assert capsys.readouterr().out == "11"


def test_fault_exit_code(program, capsys):
    path = program("int main() { int* p; print_i(*p); return 0; }")
    assert main([path]) == 3
    assert "NullDereference" in capsys.readouterr().err


def test_semantic_error_exit_code(program, capsys):
    path = program("int main() { return x; }")
    assert main([path]) == 1
    err = capsys.readouterr().err
    assert err.startswith("minic: UndeclaredIdentifier: ")
    assert "at line 1" in err


def test_parse_error_exit_code(program, capsys):
    path = program("int main() {")
    assert main([path]) == 1
    assert capsys.readouterr().err.startswith("minic: parse error: ")


def test_strict_flag(program, capsys):
    path = program("int main() { int a[2]; a[2] = 0; return 0; }")
    assert main([path]) == 3
    assert main(["--strict", path]) == 1
    assert "StaticIndexOutOfBounds" in capsys.readouterr().err


def test_entry_flag(program, capsys):
    path = program("int main() { return 0; } void alt() { print_c('!'); }")
    assert main(["--entry", "alt", path]) == 0
    assert capsys.readouterr().out == "!"


def test_emit_flag(program, capsys):
    path = program("int main(){return 1+2;}")
    assert main(["--emit", path]) == 0
    assert capsys.readouterr().out == "int main() {\n    return 1 + 2;\n}\n"


def test_help(capsys):
    assert main(["--help"]) == 0
    assert capsys.readouterr().out.startswith("minic [OPTIONS] FILE")


def test_usage_errors(program, capsys):
    assert main([]) == 2
    assert main(["--bogus"]) == 2
    assert main(["--entry"]) == 2
    path = program("int main() { return 0; }")
    assert main([path, path]) == 2
    err = capsys.readouterr().err
    assert "missing file argument" in err
    assert "unknown flag '--bogus'" in err


def test_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "absent.mc")]) == 1
    assert "No such file or directory" in capsys.readouterr().err
