"""
Test suite for the LMC assembler front end.

Tests cover:
  - Lexer: keywords, aliases, case-insensitivity, literals, positions
  - Lexer errors (invalid characters with 1-based line/column)
  - Parser: every statement form, label collection, forward references
  - Parser errors (InvalidToken, NumberOutOfRange, AddressOutOfRange)
  - Error hierarchy and one-line messages
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import logging

import pytest
from lmc_compiler import (
    AddressOutOfRange, CompileError, InvalidCharacter, InvalidToken, Lexer,
    NumberOutOfRange, ParseError, Parser, ProgramTooLarge, Token, TokenType,
    compile_source, lex, parse,
)
from lmc_compiler.ast_nodes import (
    Add, Branch, BranchPositive, BranchZero, Data, Halt, IdentifierOperand,
    Input, Load, NumberOperand, Output, Program, Store, Sub,
)
from lmc_compiler.parser import AFTER_LABEL, OPERAND, STATEMENT_START


def _types(source: str) -> list:
    return [tok.type for tok in lex(source)]


def _parse(source: str) -> Program:
    return Parser(Lexer(source).tokenize(), source).parse()


# ─── Lexer ─────────────────────────────────

class TestLexer:
    def test_all_tokens(self):
        source = "HLT COB ADD SUB STA STO LDA BRA BRZ BRP INP OUT DAT 1289 ABYZ abyz\n"
        assert lex(source) == [
            Token(TokenType.HALT),
            Token(TokenType.HALT),
            Token(TokenType.ADD),
            Token(TokenType.SUB),
            Token(TokenType.STORE),
            Token(TokenType.STORE),
            Token(TokenType.LOAD),
            Token(TokenType.BRANCH),
            Token(TokenType.BRANCH_ZERO),
            Token(TokenType.BRANCH_POSITIVE),
            Token(TokenType.INPUT),
            Token(TokenType.OUTPUT),
            Token(TokenType.DATA),
            Token(TokenType.NUMBER, 1289),
            Token(TokenType.IDENT, "ABYZ"),
            Token(TokenType.IDENT, "abyz"),
            Token(TokenType.NEWLINE),
        ]

    def test_keywords_case_insensitive(self):
        assert _types("lda LDA Lda lDa") == [TokenType.LOAD] * 4

    def test_identifier_keeps_spelling(self):
        assert lex("Loop") == [Token(TokenType.IDENT, "Loop")]

    def test_identifier_stops_at_digit(self):
        assert lex("loop1") == [Token(TokenType.IDENT, "loop"), Token(TokenType.NUMBER, 1)]

    def test_negative_literal(self):
        assert lex("x DAT -42") == [
            Token(TokenType.IDENT, "x"),
            Token(TokenType.DATA),
            Token(TokenType.NUMBER, -42),
        ]

    def test_end_of_input_terminates_runs(self):
        assert lex("OUT") == [Token(TokenType.OUTPUT)]
        assert lex("5") == [Token(TokenType.NUMBER, 5)]

    def test_whitespace_skipped(self):
        assert _types("  HLT\t\r\n\tOUT  ") == [
            TokenType.HALT, TokenType.NEWLINE, TokenType.OUTPUT]

    def test_empty_source(self):
        assert lex("") == []

    def test_token_positions(self):
        tokens = lex("HLT\n  ADD one")
        add = tokens[2]
        assert (add.line, add.col) == (2, 3)
        one = tokens[3]
        assert (one.line, one.col) == (2, 7)

    def test_oversized_literal_reads_as_zero(self, caplog):
        with caplog.at_level(logging.WARNING, logger="lmc_compiler.lexer"):
            tokens = lex("x DAT 40000")
        assert tokens[2] == Token(TokenType.NUMBER, 0)
        assert "40000" in caplog.text

    def test_deterministic(self):
        source = "loop ADD one\nBRA loop\none DAT 1\n"
        assert lex(source) == lex(source)


class TestLexerErrors:
    def test_invalid_character_start_of_line(self):
        with pytest.raises(InvalidCharacter) as exc:
            lex("LDA 10\n?")
        assert exc.value == InvalidCharacter("?", 2, 1)

    def test_invalid_character_mid_line(self):
        with pytest.raises(InvalidCharacter) as exc:
            lex("LDA 10\nSTA ?")
        assert exc.value.character == "?"
        assert (exc.value.line, exc.value.col) == (2, 5)

    def test_invalid_character_first_line(self):
        with pytest.raises(InvalidCharacter) as exc:
            lex("ADD x;")
        assert (exc.value.line, exc.value.col) == (1, 6)

    def test_lone_minus(self):
        with pytest.raises(InvalidCharacter) as exc:
            lex("a - b")
        assert exc.value.character == "-"

    def test_underscore_rejected(self):
        with pytest.raises(InvalidCharacter):
            lex("my_label HLT")

    def test_message_is_one_line(self):
        with pytest.raises(InvalidCharacter) as exc:
            lex("HLT\n\n  #")
        msg = str(exc.value)
        assert "\n" not in msg
        assert "'#'" in msg
        assert "(3:3)" in msg


# ─── Parser ────────────────────────────────

class TestParser:
    def test_all_instructions(self):
        source = """HLT
        COB
        ADD 12
        SUB ABYZ
        STA ABYZ
        STO 12
        yzab LDA ABYZ
        BRA yzab
        BRZ yzab
        BRP yzab
        INP
        OUT
        ABYZ DAT 999
        YZAB DAT
        """
        ident = IdentifierOperand
        assert _parse(source) == Program(
            labels={"yzab": 6, "ABYZ": 12, "YZAB": 13},
            instructions=[
                Halt(),
                Halt(),
                Add(operand=NumberOperand(12)),
                Sub(operand=ident("ABYZ")),
                Store(operand=ident("ABYZ")),
                Store(operand=NumberOperand(12)),
                Load(operand=ident("ABYZ")),
                Branch(operand=ident("yzab")),
                BranchZero(operand=ident("yzab")),
                BranchPositive(operand=ident("yzab")),
                Input(),
                Output(),
                Data(label="ABYZ", value=999),
                Data(label="YZAB", value=0),
            ],
        )

    def test_forward_reference_is_unresolved(self):
        program = _parse("BRA end\nOUT\nend HLT")
        assert program.labels == {"end": 2}
        assert program.instructions[0] == Branch(operand=IdentifierOperand("end"))

    def test_label_on_own_statement_count(self):
        program = _parse("\n\nfirst INP\n\nsecond OUT\n")
        assert program.labels == {"first": 0, "second": 1}

    def test_data_without_trailing_newline(self):
        program = _parse("x DAT")
        assert program.instructions == [Data(label="x", value=0)]

    def test_data_bounds_inclusive(self):
        program = _parse("lo DAT -999\nhi DAT 999")
        assert [d.value for d in program.instructions] == [-999, 999]

    def test_address_bounds(self):
        program = _parse("LDA 1\nLDA 99")
        assert [i.operand for i in program.instructions] == [
            NumberOperand(1), NumberOperand(99)]

    def test_node_positions(self):
        program = _parse("HLT\n  x DAT 3")
        data = program.instructions[1]
        assert (data.line, data.col) == (2, 3)

    def test_duplicate_label_last_wins(self, caplog):
        with caplog.at_level(logging.WARNING, logger="lmc_compiler.parser"):
            program = _parse("a HLT\na OUT")
        assert program.labels == {"a": 1}
        assert "redefined" in caplog.text

    def test_tokens_not_modified(self):
        tokens = lex("HLT 5")
        before = list(tokens)
        with pytest.raises(InvalidToken):
            parse(tokens)
        assert tokens == before

    def test_hundred_statements_fit(self):
        program = _parse("HLT\n" * 100)
        assert len(program.instructions) == 100


class TestParserErrors:
    def test_too_many_tokens(self):
        with pytest.raises(InvalidToken) as exc:
            _parse("HLT 1289")
        assert exc.value.expected == (TokenType.NEWLINE,)
        assert exc.value.received == Token(TokenType.NUMBER, 1289)

    def test_not_enough_tokens(self):
        with pytest.raises(InvalidToken) as exc:
            _parse("ADD")
        assert exc.value.expected == OPERAND
        assert exc.value.received is None
        assert "received nothing" in str(exc.value)

    def test_operand_must_be_number_or_identifier(self):
        with pytest.raises(InvalidToken) as exc:
            _parse("ADD HLT")
        assert exc.value.received == Token(TokenType.HALT)

    def test_extra_token_after_operand(self):
        with pytest.raises(InvalidToken) as exc:
            _parse("ADD x y")
        assert exc.value.expected == (TokenType.NEWLINE,)
        assert exc.value.received == Token(TokenType.IDENT, "y")

    def test_label_without_statement(self):
        with pytest.raises(InvalidToken) as exc:
            _parse("lonely\nHLT")
        assert exc.value.expected == AFTER_LABEL
        assert exc.value.received == Token(TokenType.NEWLINE)

    def test_label_at_end_of_input(self):
        with pytest.raises(InvalidToken) as exc:
            _parse("HLT\nlonely")
        assert exc.value.expected == AFTER_LABEL
        assert exc.value.received is None

    def test_two_labels(self):
        with pytest.raises(InvalidToken) as exc:
            _parse("a b HLT")
        assert exc.value.received == Token(TokenType.IDENT, "b")

    def test_data_without_label(self):
        with pytest.raises(InvalidToken) as exc:
            _parse("DAT 5")
        assert exc.value.expected == STATEMENT_START
        assert exc.value.received == Token(TokenType.DATA)

    def test_number_at_statement_start(self):
        with pytest.raises(InvalidToken) as exc:
            _parse("5")
        assert exc.value.received == Token(TokenType.NUMBER, 5)

    def test_data_with_identifier(self):
        with pytest.raises(InvalidToken) as exc:
            _parse("x DAT y")
        assert exc.value.expected == (TokenType.NUMBER, TokenType.NEWLINE)

    def test_number_out_of_range(self):
        with pytest.raises(NumberOutOfRange) as exc:
            _parse("A DAT 1000")
        assert exc.value.value == 1000

    def test_negative_number_out_of_range(self):
        with pytest.raises(NumberOutOfRange) as exc:
            _parse("A DAT -1000")
        assert exc.value.value == -1000

    def test_address_out_of_range(self):
        with pytest.raises(AddressOutOfRange) as exc:
            _parse("ADD 100")
        assert exc.value.value == 100

    def test_address_zero_rejected(self):
        with pytest.raises(AddressOutOfRange) as exc:
            _parse("BRA 0")
        assert exc.value.value == 0

    def test_program_too_large(self):
        with pytest.raises(ProgramTooLarge) as exc:
            _parse("OUT\n" * 101)
        assert exc.value.count == 101

    def test_invalid_token_message(self):
        with pytest.raises(InvalidToken) as exc:
            _parse("HLT\nOUT 7")
        msg = str(exc.value)
        assert msg == "Expected newline, received number `7` at L2:5"


# ─── Error hierarchy ───────────────────────

class TestErrors:
    @pytest.mark.parametrize("source, error", [
        ("HLT ?", InvalidCharacter),
        ("HLT HLT", InvalidToken),
        ("x DAT 5000", NumberOutOfRange),
        ("LDA 150", AddressOutOfRange),
        ("LDA nowhere", CompileError),
    ])
    def test_every_stage_is_a_compile_error(self, source, error):
        with pytest.raises(error) as exc:
            compile_source(source)
        assert isinstance(exc.value, CompileError)
        assert "\n" not in str(exc.value)

    def test_parse_errors_share_base(self):
        for cls in (InvalidToken, NumberOutOfRange, AddressOutOfRange, ProgramTooLarge):
            assert issubclass(cls, ParseError)
        assert not issubclass(InvalidCharacter, ParseError)
