"""
Lexer / Tokenizer for the Little Man Computer assembler.

Converts LMC assembly text into a flat list of tokens for the parser.
The vocabulary is tiny: eleven mnemonics (plus two aliases), signed decimal
literals, identifiers (labels) and explicit newlines, which the parser uses
as statement separators.

Keywords are matched case-insensitively, so ``lda``, ``LDA`` and ``Lda``
all produce ``TokenType.LOAD``.
"""

from __future__ import annotations
import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, List

from .errors import CompileError

log = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Token types
# ──────────────────────────────────────────────

class TokenType(enum.Enum):
    # Mnemonics
    HALT = "HLT"
    ADD = "ADD"
    SUB = "SUB"
    STORE = "STA"
    LOAD = "LDA"
    BRANCH = "BRA"
    BRANCH_ZERO = "BRZ"
    BRANCH_POSITIVE = "BRP"
    INPUT = "INP"
    OUTPUT = "OUT"
    DATA = "DAT"

    # Literals / names
    NUMBER = "number"
    IDENT = "identifier"

    # Statement separator
    NEWLINE = "newline"

    def __str__(self) -> str:
        return self.value


# Signed 16-bit storage range for literals
INT16_MIN = -0x8000
INT16_MAX = 0x7FFF


# ──────────────────────────────────────────────
# Token data class
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str | int | None = None
    line: int = field(default=0, compare=False)
    col: int = field(default=0, compare=False)

    def __repr__(self):
        return f"Token({self.type.name}, {self.value!r}, L{self.line}:{self.col})"

    def __str__(self) -> str:
        if self.type is TokenType.NUMBER:
            return f"number `{self.value}`"
        if self.type is TokenType.IDENT:
            return f"identifier `{self.value}`"
        return str(self.type)


# ──────────────────────────────────────────────
# Keyword map (keys are upper-case)
# ──────────────────────────────────────────────

KEYWORDS: Dict[str, TokenType] = {
    "HLT": TokenType.HALT,
    "COB": TokenType.HALT,
    "ADD": TokenType.ADD,
    "SUB": TokenType.SUB,
    "STA": TokenType.STORE,
    "STO": TokenType.STORE,
    "LDA": TokenType.LOAD,
    "BRA": TokenType.BRANCH,
    "BRZ": TokenType.BRANCH_ZERO,
    "BRP": TokenType.BRANCH_POSITIVE,
    "INP": TokenType.INPUT,
    "OUT": TokenType.OUTPUT,
    "DAT": TokenType.DATA,
}

WHITESPACE = " \t\r\f\v"


# ──────────────────────────────────────────────
# Lexer
# ──────────────────────────────────────────────

class InvalidCharacter(CompileError):
    """A character outside the LMC alphabet. Lexing stops at the first one."""

    def __init__(self, character: str, line: int, col: int):
        self.character = character
        self.line = line
        self.col = col
        super().__init__(f"invalid character {character!r} while lexing ({line}:{col})")

    def __eq__(self, other):
        if not isinstance(other, InvalidCharacter):
            return NotImplemented
        return (self.character, self.line, self.col) == (other.character, other.line, other.col)

    __hash__ = Exception.__hash__


def _is_letter(ch: str) -> bool:
    return ("a" <= ch <= "z") or ("A" <= ch <= "Z")


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


class Lexer:
    """Tokenizes LMC assembly source into a list of Tokens."""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.col = 1
        self.tokens: List[Token] = []

    def _peek(self, offset: int = 0) -> str:
        i = self.pos + offset
        return self.source[i] if i < len(self.source) else "\0"

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def _read_word(self) -> Token:
        start_line, start_col = self.line, self.col
        start_pos = self.pos

        # End of input is a valid terminator for the run
        while self.pos < len(self.source) and _is_letter(self.source[self.pos]):
            self._advance()

        text = self.source[start_pos:self.pos]
        ttype = KEYWORDS.get(text.upper())
        if ttype is not None:
            return Token(ttype, None, start_line, start_col)
        return Token(TokenType.IDENT, text, start_line, start_col)

    def _read_number(self) -> Token:
        start_line, start_col = self.line, self.col
        start_pos = self.pos

        if self._peek() == "-":
            self._advance()
        while self.pos < len(self.source) and _is_digit(self.source[self.pos]):
            self._advance()

        text = self.source[start_pos:self.pos]
        value = int(text)
        if not INT16_MIN <= value <= INT16_MAX:
            # Literals that do not fit 16 bits read as zero
            log.warning("L%d:%d: literal %s does not fit in 16 bits, using 0",
                        start_line, start_col, text)
            value = 0
        return Token(TokenType.NUMBER, value, start_line, start_col)

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source and return a list of tokens.

        Raises InvalidCharacter at the first character that cannot start a
        token; nothing after it is examined.
        """
        self.tokens = []

        while self.pos < len(self.source):
            ch = self._peek()

            if _is_letter(ch):
                self.tokens.append(self._read_word())
                continue

            if _is_digit(ch) or (ch == "-" and _is_digit(self._peek(1))):
                self.tokens.append(self._read_number())
                continue

            if ch == "\n":
                self.tokens.append(Token(TokenType.NEWLINE, None, self.line, self.col))
                self._advance()
                continue

            if ch in WHITESPACE:
                self._advance()
                continue

            raise InvalidCharacter(ch, self.line, self.col)

        log.debug("lexed %d tokens over %d line(s)", len(self.tokens), self.line)
        return self.tokens


def lex(source: str) -> List[Token]:
    """Convenience wrapper: ``Lexer(source).tokenize()``."""
    return Lexer(source).tokenize()
