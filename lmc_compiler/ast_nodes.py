"""
AST Node definitions for the LMC assembler.

Defines the program representation produced by the parser and consumed by
the code generator. Each statement in the source becomes exactly one
Instruction node, and each node will occupy exactly one of the 100 mailboxes,
in source order.

Operands are kept unresolved here: a label may be used before it is declared,
so turning names into addresses is left to the code generator.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import ClassVar, Dict, List, Optional, Union


# ──────────────────────────────────────────────
# Operands
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class NumberOperand:
    """A numeric operand, used directly as a mailbox address."""
    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class IdentifierOperand:
    """A label reference, resolved to an address at code-generation time."""
    name: str

    def __str__(self) -> str:
        return self.name


Operand = Union[NumberOperand, IdentifierOperand]


# ──────────────────────────────────────────────
# Base AST node
# ──────────────────────────────────────────────

@dataclass
class ASTNode:
    """Base class for all AST nodes."""
    line: int = field(default=0, compare=False)
    col: int = field(default=0, compare=False)


@dataclass
class Instruction(ASTNode):
    """Base class for statements. ``mnemonic`` is the canonical spelling."""
    mnemonic: ClassVar[str] = ""


# ──────────────────────────────────────────────
# Zero-operand instructions
# ──────────────────────────────────────────────

@dataclass
class Halt(Instruction):
    mnemonic: ClassVar[str] = "HLT"


@dataclass
class Input(Instruction):
    mnemonic: ClassVar[str] = "INP"


@dataclass
class Output(Instruction):
    mnemonic: ClassVar[str] = "OUT"


# ──────────────────────────────────────────────
# One-operand instructions
# ──────────────────────────────────────────────

@dataclass
class OperandInstruction(Instruction):
    """An instruction carrying one (still unresolved) operand."""
    operand: Optional[Operand] = None


@dataclass
class Add(OperandInstruction):
    mnemonic: ClassVar[str] = "ADD"


@dataclass
class Sub(OperandInstruction):
    mnemonic: ClassVar[str] = "SUB"


@dataclass
class Store(OperandInstruction):
    mnemonic: ClassVar[str] = "STA"


@dataclass
class Load(OperandInstruction):
    mnemonic: ClassVar[str] = "LDA"


@dataclass
class Branch(OperandInstruction):
    mnemonic: ClassVar[str] = "BRA"


@dataclass
class BranchZero(OperandInstruction):
    mnemonic: ClassVar[str] = "BRZ"


@dataclass
class BranchPositive(OperandInstruction):
    mnemonic: ClassVar[str] = "BRP"


# ──────────────────────────────────────────────
# Data cells
# ──────────────────────────────────────────────

@dataclass
class Data(Instruction):
    """A labelled mailbox holding a literal: ``name DAT value``."""
    mnemonic: ClassVar[str] = "DAT"
    label: str = ""
    value: int = 0


# ──────────────────────────────────────────────
# Top-level: Program
# ──────────────────────────────────────────────

@dataclass
class Program:
    """Root node: label table plus the ordered statement list.

    ``labels`` maps every declared name (instruction labels and data-cell
    names alike) to the mailbox its statement occupies.
    """
    labels: Dict[str, int] = field(default_factory=dict)
    instructions: List[Instruction] = field(default_factory=list)
