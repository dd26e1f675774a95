"""
LMC Code Generator.

Translates a parsed Program into a fixed 100-mailbox machine image.

Instruction encoding (one mailbox per statement, in source order):

    HLT        -> 0 00          BRA addr   -> 6 addr
    ADD addr   -> 1 addr        BRZ addr   -> 7 addr
    SUB addr   -> 2 addr        BRP addr   -> 8 addr
    STA addr   -> 3 addr        INP        -> 9 01
    (4 unused)                  OUT        -> 9 02
    LDA addr   -> 5 addr        DAT value  -> data cell holding value

Unused mailboxes are data cells holding 0, which the emulator treats as an
implicit halt.

A numeric operand is a direct address, not an immediate value: ``ADD 5``
adds the contents of mailbox 5. Identifier operands are looked up in one
symbol table built from the data-cell names and the parser's label table
(labels win on a collision); a name in neither is an InvalidIdentifier and
no image is produced.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from .errors import CompileError
from .ast_nodes import (
    Add, Branch, BranchPositive, BranchZero, Data, Halt, IdentifierOperand,
    Input, Instruction, Load, NumberOperand, OperandInstruction, Output,
    Program, Store, Sub,
)

log = logging.getLogger(__name__)

MEMORY_SIZE = 100


# ──────────────────────────────────────────────
# Machine words
# ──────────────────────────────────────────────

OPCODE_MNEMONICS: Dict[int, str] = {
    0: "HLT",
    1: "ADD",
    2: "SUB",
    3: "STA",
    5: "LDA",
    6: "BRA",
    7: "BRZ",
    8: "BRP",
}

IO_MNEMONICS: Dict[int, str] = {
    1: "INP",
    2: "OUT",
}


@dataclass(frozen=True)
class InstructionCell:
    """An executable mailbox: opcode 0-9, operand 0-99."""
    opcode: int
    operand: int

    @property
    def word(self) -> int:
        return self.opcode * 100 + self.operand

    def disassemble(self) -> str:
        if self.opcode == 9:
            return IO_MNEMONICS.get(self.operand, f"??? {self.operand:02d}")
        if self.opcode == 0:
            return "HLT"
        mnem = OPCODE_MNEMONICS.get(self.opcode, "???")
        return f"{mnem} {self.operand:02d}"

    def __str__(self) -> str:
        return f"{self.word:03d}"


@dataclass(frozen=True)
class DataCell:
    """A mailbox holding a signed value."""
    value: int

    @property
    def word(self) -> int:
        return self.value

    def disassemble(self) -> str:
        return f"DAT {self.value}"

    def __str__(self) -> str:
        return f"{self.value:03d}" if self.value >= 0 else str(self.value)


Location = Union[InstructionCell, DataCell]
Image = List[Location]

EMPTY = DataCell(0)


def empty_image() -> Image:
    """A fresh image with every mailbox set to DAT 0."""
    return [EMPTY] * MEMORY_SIZE


# ──────────────────────────────────────────────
# Errors
# ──────────────────────────────────────────────

class CodeGenError(CompileError):
    """Base for errors raised while generating the image."""


class InvalidIdentifier(CodeGenError):
    """An operand names a label that is never declared."""

    def __init__(self, identifier: str, node: Optional[Instruction] = None):
        self.identifier = identifier
        self.node = node
        where = f" at L{node.line}:{node.col}" if node is not None and node.line else ""
        super().__init__(f"Undefined identifier `{identifier}`{where}")


# ──────────────────────────────────────────────
# Code generator
# ──────────────────────────────────────────────

class CodeGenerator:
    """Walks a Program and emits one Location per statement."""

    OPCODES = {
        Add: 1,
        Sub: 2,
        Store: 3,
        Load: 5,
        Branch: 6,
        BranchZero: 7,
        BranchPositive: 8,
    }

    def __init__(self):
        self.symbols: Dict[str, int] = {}

    def _build_symbols(self, program: Program) -> Dict[str, int]:
        symbols: Dict[str, int] = {}
        for slot, node in enumerate(program.instructions):
            if isinstance(node, Data) and node.label:
                symbols[node.label] = slot
        symbols.update(program.labels)
        return symbols

    def _resolve(self, node: OperandInstruction) -> int:
        operand = node.operand
        if isinstance(operand, NumberOperand):
            return operand.value % MEMORY_SIZE
        if isinstance(operand, IdentifierOperand):
            try:
                return self.symbols[operand.name]
            except KeyError:
                raise InvalidIdentifier(operand.name, node) from None
        raise CodeGenError(f"{node.mnemonic} has no operand")

    def _gen_instruction(self, node: Instruction) -> Location:
        if isinstance(node, Halt):
            return InstructionCell(0, 0)
        if isinstance(node, Input):
            return InstructionCell(9, 1)
        if isinstance(node, Output):
            return InstructionCell(9, 2)
        if isinstance(node, Data):
            return DataCell(node.value)
        opcode = self.OPCODES.get(type(node))
        if opcode is None:
            raise CodeGenError(f"Unsupported statement: {type(node).__name__}")
        return InstructionCell(opcode, self._resolve(node))

    def generate(self, program: Program) -> Image:
        """Generate the 100-mailbox image for ``program``.

        Pure: the same Program always yields an equal image.
        """
        if len(program.instructions) > MEMORY_SIZE:
            raise CodeGenError(
                f"Program has {len(program.instructions)} statements, "
                f"but memory only holds {MEMORY_SIZE}")

        self.symbols = self._build_symbols(program)
        image = empty_image()
        for slot, node in enumerate(program.instructions):
            image[slot] = self._gen_instruction(node)

        log.debug("generated %d mailbox(es)", len(program.instructions))
        return image


def generate(program: Program) -> Image:
    """Convenience wrapper: ``CodeGenerator().generate(program)``."""
    return CodeGenerator().generate(program)


# ──────────────────────────────────────────────
# Output formatting
# ──────────────────────────────────────────────

def used_length(image: Image) -> int:
    """Index one past the last mailbox that is not DAT 0."""
    for i in range(len(image) - 1, -1, -1):
        if image[i] != EMPTY:
            return i + 1
    return 0


def format_image(image: Image) -> str:
    """Render the image as a 10x10 grid of mailbox words."""
    rows = []
    for base in range(0, len(image), 10):
        cells = " ".join(f"{str(loc):>4}" for loc in image[base:base + 10])
        rows.append(f"{base:02d}: {cells}")
    return "\n".join(rows)


def format_listing(image: Image) -> str:
    """Render the used part of the image as ``addr  word  disassembly``."""
    lines = ["ADDR  WORD  INSTRUCTION", "----  ----  -----------"]
    for addr in range(used_length(image)):
        loc = image[addr]
        lines.append(f"  {addr:02d}  {str(loc):>4}  {loc.disassemble()}")
    return "\n".join(lines)
