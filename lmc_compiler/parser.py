"""
Two-pass parser for the LMC assembler.

Parses the token list from the Lexer into a Program (ast_nodes). The grammar
is line oriented; every statement is one of

    [label] mnemonic [operand] NEWLINE
    label DAT [number] NEWLINE

and end of input may stand in for the final NEWLINE.

How the two passes work:
  Pass 1: Walk the tokens and bind every identifier that is immediately
          followed by a mnemonic or DAT to the slot its statement will
          occupy (the count of statements seen so far). Nothing is emitted.
  Pass 2: Walk the tokens again with an explicit cursor, skip the label
          tokens pass 1 already bound, and build one Instruction per
          statement. Identifier operands stay unresolved; the code generator
          turns them into addresses once every slot is known.

Keeping the passes separate lets a branch refer to a label declared further
down without any back-patching.
"""

from __future__ import annotations
import logging
from typing import Dict, Optional, Sequence, Tuple

from .errors import CompileError
from .lexer import Token, TokenType
from .ast_nodes import (
    Add, Branch, BranchPositive, BranchZero, Data, Halt, IdentifierOperand,
    Input, Instruction, Load, NumberOperand, Operand, Output, Program, Store,
    Sub,
)

log = logging.getLogger(__name__)

# Number of mailboxes a program may fill
MAX_INSTRUCTIONS = 100

# Bounds are exclusive on both ends
DATA_MIN, DATA_MAX = -1000, 1000
ADDRESS_MIN, ADDRESS_MAX = 0, 100


# ──────────────────────────────────────────────
# Token groups
# ──────────────────────────────────────────────

NO_OPERAND = {
    TokenType.HALT: Halt,
    TokenType.INPUT: Input,
    TokenType.OUTPUT: Output,
}

ONE_OPERAND = {
    TokenType.ADD: Add,
    TokenType.SUB: Sub,
    TokenType.STORE: Store,
    TokenType.LOAD: Load,
    TokenType.BRANCH: Branch,
    TokenType.BRANCH_ZERO: BranchZero,
    TokenType.BRANCH_POSITIVE: BranchPositive,
}

# Opcode order: HLT ADD SUB STA LDA BRA BRZ BRP INP OUT
MNEMONICS: Tuple[TokenType, ...] = (
    TokenType.HALT,
    TokenType.ADD,
    TokenType.SUB,
    TokenType.STORE,
    TokenType.LOAD,
    TokenType.BRANCH,
    TokenType.BRANCH_ZERO,
    TokenType.BRANCH_POSITIVE,
    TokenType.INPUT,
    TokenType.OUTPUT,
)

STATEMENT_START = MNEMONICS + (TokenType.IDENT,)
AFTER_LABEL = MNEMONICS + (TokenType.DATA,)
OPERAND = (TokenType.IDENT, TokenType.NUMBER)


# ──────────────────────────────────────────────
# Errors
# ──────────────────────────────────────────────

class ParseError(CompileError):
    """Base for every error raised while parsing."""


def _describe_expected(expected: Sequence[TokenType]) -> str:
    names = [str(t) for t in expected]
    if not names:
        return "Expected nothing"
    if len(names) == 1:
        return f"Expected {names[0]}"
    return f"Expected: {', '.join(names[:-1])} or {names[-1]}"


class InvalidToken(ParseError):
    """The next token cannot continue the current statement."""

    def __init__(self, expected: Sequence[TokenType], received: Optional[Token]):
        self.expected = tuple(expected)
        self.received = received
        if received is None:
            got = "received nothing"
        else:
            got = f"received {received} at L{received.line}:{received.col}"
        super().__init__(f"{_describe_expected(self.expected)}, {got}")


class NumberOutOfRange(ParseError):
    """A DAT literal outside -999..999."""

    def __init__(self, value: int, token: Optional[Token] = None):
        self.value = value
        self.token = token
        where = f" at L{token.line}:{token.col}" if token else ""
        super().__init__(
            f"Number `{value}`{where} out of range, expected a number between "
            f"-999 and 999 inclusive")


class AddressOutOfRange(ParseError):
    """A numeric operand outside 1..99."""

    def __init__(self, value: int, token: Optional[Token] = None):
        self.value = value
        self.token = token
        where = f" at L{token.line}:{token.col}" if token else ""
        super().__init__(
            f"Address `{value}`{where} out of range, expected a number between "
            f"0 and 100 exclusive")


class ProgramTooLarge(ParseError):
    """More statements than there are mailboxes."""

    def __init__(self, count: int):
        self.count = count
        super().__init__(
            f"Program has {count} statements, but memory only holds {MAX_INSTRUCTIONS}")


# ──────────────────────────────────────────────
# Parser
# ──────────────────────────────────────────────

class Parser:
    """Two-pass parser producing a Program from tokens.

    The token list is never modified; both passes read it through a cursor.
    """

    def __init__(self, tokens: Sequence[Token], source: str = ""):
        self.tokens = tuple(tokens)
        self.source = source
        self.pos = 0

    # ── Helpers ─────────────────────────────

    def _peek(self, offset: int = 0) -> Optional[Token]:
        i = self.pos + offset
        if i < len(self.tokens):
            return self.tokens[i]
        return None

    def _at(self, *types: TokenType, offset: int = 0) -> bool:
        tok = self._peek(offset)
        return tok is not None and tok.type in types

    def _advance(self) -> Token:
        tok = self.tokens[self.pos]
        self.pos += 1
        return tok

    def _expect_end_of_statement(self):
        """A statement ends at NEWLINE or at end of input."""
        tok = self._peek()
        if tok is None:
            return
        if tok.type is not TokenType.NEWLINE:
            raise InvalidToken((TokenType.NEWLINE,), tok)
        self._advance()

    # ── Pass 1 ──────────────────────────────

    def _collect_labels(self) -> Dict[str, int]:
        """Bind each label to the slot of the statement it prefixes."""
        labels: Dict[str, int] = {}
        count = 0
        for i, tok in enumerate(self.tokens):
            if tok.type in AFTER_LABEL:
                count += 1
                continue
            if tok.type is not TokenType.IDENT or i + 1 >= len(self.tokens):
                continue
            if self.tokens[i + 1].type in AFTER_LABEL:
                if tok.value in labels:
                    log.warning("L%d:%d: label %r redefined (was slot %d, now %d)",
                                tok.line, tok.col, tok.value, labels[tok.value], count)
                labels[tok.value] = count
        return labels

    # ── Pass 2 ──────────────────────────────

    def _parse_no_operand(self) -> Instruction:
        tok = self._advance()
        node = NO_OPERAND[tok.type](line=tok.line, col=tok.col)
        self._expect_end_of_statement()
        return node

    def _parse_operand(self) -> Operand:
        tok = self._peek()
        if tok is None or tok.type not in OPERAND:
            raise InvalidToken(OPERAND, tok)
        self._advance()
        if tok.type is TokenType.IDENT:
            return IdentifierOperand(tok.value)
        if not ADDRESS_MIN < tok.value < ADDRESS_MAX:
            raise AddressOutOfRange(tok.value, tok)
        return NumberOperand(tok.value)

    def _parse_single_operand(self) -> Instruction:
        tok = self._advance()
        operand = self._parse_operand()
        node = ONE_OPERAND[tok.type](line=tok.line, col=tok.col, operand=operand)
        self._expect_end_of_statement()
        return node

    def _parse_data(self, label: Token) -> Instruction:
        self._advance()  # DAT
        value = 0
        tok = self._peek()
        if tok is not None and tok.type is TokenType.NUMBER:
            if not DATA_MIN < tok.value < DATA_MAX:
                raise NumberOutOfRange(tok.value, tok)
            value = tok.value
            self._advance()
        elif tok is not None and tok.type is not TokenType.NEWLINE:
            raise InvalidToken((TokenType.NUMBER, TokenType.NEWLINE), tok)
        node = Data(line=label.line, col=label.col, label=label.value, value=value)
        self._expect_end_of_statement()
        return node

    def _parse_labelled(self) -> Optional[Instruction]:
        """Handle a statement that starts with an identifier.

        Returns a Data node for ``name DAT``; for ``name MNEMONIC`` only the
        label is consumed and the mnemonic is parsed on the next iteration.
        """
        label = self._advance()
        nxt = self._peek()
        if nxt is not None and nxt.type is TokenType.DATA:
            return self._parse_data(label)
        if nxt is not None and nxt.type in MNEMONICS:
            return None
        raise InvalidToken(AFTER_LABEL, nxt)

    def _parse_statement(self) -> Optional[Instruction]:
        tok = self._peek()
        if tok.type is TokenType.NEWLINE:
            self._advance()
            return None
        if tok.type in NO_OPERAND:
            return self._parse_no_operand()
        if tok.type in ONE_OPERAND:
            return self._parse_single_operand()
        if tok.type is TokenType.IDENT:
            return self._parse_labelled()
        raise InvalidToken(STATEMENT_START, tok)

    # ── Top-level parsing ─────────────────────

    def parse(self) -> Program:
        """Parse the full token stream into a Program."""
        self.pos = 0
        program = Program(labels=self._collect_labels())

        while self.pos < len(self.tokens):
            node = self._parse_statement()
            if node is not None:
                program.instructions.append(node)

        if len(program.instructions) > MAX_INSTRUCTIONS:
            raise ProgramTooLarge(len(program.instructions))

        log.debug("parsed %d statement(s), %d label(s)",
                  len(program.instructions), len(program.labels))
        return program


def parse(tokens: Sequence[Token]) -> Program:
    """Convenience wrapper: ``Parser(tokens).parse()``."""
    return Parser(tokens).parse()
