"""
LMC Assembler
=============
Assembler for the Little Man Computer: 11 mnemonics, 100 mailboxes and a
single accumulator.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌─────────────┐
    │ Source   │───>│  Lexer   │───>│  Parser  │───>│   CodeGen   │
    │ (.lmc)   │    │ (tokens) │    │ (AST)    │    │ (100 cells) │
    └──────────┘    └──────────┘    └──────────┘    └─────────────┘

    - lexer.py:     Hand-written scanner, case-insensitive mnemonics
    - parser.py:    Two passes: label collection, then statement emission
    - ast_nodes.py: Dataclass statements + unresolved operands
    - codegen.py:   Label resolution + fixed-width mailbox encoding

Each stage raises its own error family; all of them derive from
CompileError. The image is regenerated from source every time; there is
no object-file format.
"""

__version__ = "0.4.0"

from .errors import CompileError
from .lexer import Lexer, Token, TokenType, InvalidCharacter, lex
from .ast_nodes import *
from .parser import (
    Parser, ParseError, InvalidToken, NumberOutOfRange, AddressOutOfRange,
    ProgramTooLarge, parse,
)
from .codegen import (
    CodeGenerator, CodeGenError, InvalidIdentifier, InstructionCell, DataCell,
    Location, Image, MEMORY_SIZE, empty_image, generate, format_image,
    format_listing,
)


def compile_source(source: str, *, output: str = "image"):
    """Assemble LMC source.

    Full pipeline: Lexer -> Parser -> CodeGenerator.

    Args:
        source: LMC assembly text.
        output: 'image' (default) returns the list of 100 Locations,
                'grid' the 10x10 mailbox dump, 'listing' an address /
                word / disassembly listing.

    Raises:
        CompileError (InvalidCharacter, InvalidToken, NumberOutOfRange,
        AddressOutOfRange, ProgramTooLarge or InvalidIdentifier).
    """
    tokens = Lexer(source).tokenize()
    program = Parser(tokens, source).parse()
    image = CodeGenerator().generate(program)

    if output == "image":
        return image
    if output == "grid":
        return format_image(image)
    if output == "listing":
        return format_listing(image)
    raise ValueError(f"unknown output format: {output!r}")


def compile(source: str) -> Image:
    """Assemble LMC source into a 100-mailbox image."""
    return compile_source(source)
