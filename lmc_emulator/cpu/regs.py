"""
LMC Virtual Emulator: CPU Register Set

Register model for the Little Man Computer:
  PC   program counter, mailbox 0-99
  ACC  accumulator, signed 16-bit (conceptually -999..999)
  CIR  current instruction register, last decoded opcode
  MAR  memory address register, last decoded operand
  MDR  memory data register, last value read from a data mailbox

There are no flags: BRZ and BRP test the accumulator directly.
"""

INT16_MIN = -0x8000
INT16_MAX = 0x7FFF


def to_int16(value: int) -> int:
    """Wrap an integer to signed 16-bit two's complement."""
    value &= 0xFFFF
    return value - 0x10000 if value > INT16_MAX else value


class Registers:
    """LMC register set."""

    __slots__ = ('PC', 'ACC', 'CIR', 'MAR', 'MDR')

    def __init__(self):
        self.PC: int = 0    # Program counter
        self.ACC: int = 0   # Accumulator
        self.CIR: int = 0   # Current instruction register (opcode)
        self.MAR: int = 0   # Memory address register
        self.MDR: int = 0   # Memory data register

    # --- Long names, as shown in the state viewer ---

    @property
    def program_counter(self) -> int:
        return self.PC

    @property
    def accumulator(self) -> int:
        return self.ACC

    @property
    def current_instruction_register(self) -> int:
        return self.CIR

    @property
    def memory_address_register(self) -> int:
        return self.MAR

    @property
    def memory_data_register(self) -> int:
        return self.MDR

    def copy(self) -> "Registers":
        other = Registers()
        for name in self.__slots__:
            setattr(other, name, getattr(self, name))
        return other

    def __eq__(self, other):
        if not isinstance(other, Registers):
            return NotImplemented
        return all(getattr(self, n) == getattr(other, n) for n in self.__slots__)

    def __repr__(self):
        return f"Registers({self.display()})"

    # --- Display ---

    def display(self) -> str:
        """Format register state for debugging."""
        return (f"PC={self.PC:02d} ACC={self.ACC} CIR={self.CIR} "
                f"MAR={self.MAR:02d} MDR={self.MDR}")

    def reset(self):
        """Zero every register."""
        self.PC = 0
        self.ACC = 0
        self.CIR = 0
        self.MAR = 0
        self.MDR = 0
