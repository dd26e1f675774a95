"""
Tests for the lmcc command-line front end.

Runs main() in-process against small source files written to tmp_path.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import logging

import pytest
import lmcc

ADDER = "INP\nSTA a\nINP\nADD a\nOUT\nHLT\na DAT\n"


@pytest.fixture(autouse=True)
def _restore_logging():
    """main() reconfigures the root logger; put it back after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def source_file(tmp_path):
    def _write(text: str, name: str = "prog.lmc"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return str(path)
    return _write


class TestAssemble:
    def test_grid_to_stdout(self, source_file, capsys):
        assert lmcc.main([source_file("loop ADD one\nBRA loop\none DAT 1\n")]) == 0
        out = capsys.readouterr().out
        assert out.startswith("00:  102  600  001")

    def test_listing_from_extension(self, source_file, tmp_path):
        out_path = tmp_path / "prog.lst"
        assert lmcc.main([source_file(ADDER), "-o", str(out_path)]) == 0
        text = out_path.read_text(encoding="utf-8")
        assert "  03   106  ADD 06" in text

    def test_format_flag(self, source_file, capsys):
        assert lmcc.main([source_file("HLT"), "--format", "listing"]) == 0
        assert "  00   000  HLT" in capsys.readouterr().out

    def test_tokens_dump(self, source_file, capsys):
        assert lmcc.main([source_file("lda x"), "--tokens"]) == 0
        out = capsys.readouterr().out
        assert "Token(LOAD" in out
        assert "Token(IDENT, 'x'" in out

    def test_ast_dump(self, source_file, capsys):
        assert lmcc.main([source_file("BRA end\nend HLT"), "--ast"]) == 0
        out = capsys.readouterr().out
        assert "label end = 01" in out


class TestErrors:
    def test_missing_file(self, tmp_path, capsys):
        assert lmcc.main([str(tmp_path / "nope.lmc")]) == 1
        assert "File not found" in capsys.readouterr().err

    @pytest.mark.parametrize("text, prefix", [
        ("HLT !", "Lexer error"),
        ("HLT HLT", "Parse error"),
        ("BRA nowhere", "Code generation error"),
    ])
    def test_compile_errors(self, source_file, capsys, text, prefix):
        assert lmcc.main([source_file(text)]) == 1
        assert capsys.readouterr().err.startswith(prefix)

    def test_runtime_error(self, source_file, capsys):
        assert lmcc.main([source_file("OUT\nx DAT 3"), "--run"]) == 1
        assert "Runtime error" in capsys.readouterr().err


class TestRun:
    def test_run_direct(self, source_file, capsys):
        assert lmcc.main([source_file(ADDER), "--run", "--input", "3", "4"]) == 0
        assert capsys.readouterr().out.strip() == "7"

    def test_run_stepped(self, source_file, capsys):
        code = lmcc.main([source_file(ADDER), "--run", "--speed", "instant",
                          "--input", "10", "-3"])
        assert code == 0
        assert capsys.readouterr().out.strip() == "7"

    def test_run_out_of_input(self, source_file, capsys):
        assert lmcc.main([source_file(ADDER), "--run", "--input", "1"]) == 1
        assert "more input" in capsys.readouterr().err

    def test_run_timeout(self, source_file, capsys):
        assert lmcc.main([source_file("spin BRA spin"), "--run", "--max-steps", "10"]) == 1
        assert "no halt" in capsys.readouterr().err
