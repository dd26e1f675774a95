"""
Common base for compile-time errors.

Each pipeline stage raises its own exception family, defined beside the stage:

    lexer.py    InvalidCharacter                      (lexical)
    parser.py   InvalidToken, NumberOutOfRange,
                AddressOutOfRange, ProgramTooLarge    (syntactic)
    codegen.py  InvalidIdentifier                     (linking)

They share this base so a caller that only wants "did it compile?" can catch
one type, while still being able to tell the stages apart.
"""


class CompileError(Exception):
    """Raised by any stage of the assembler pipeline."""
