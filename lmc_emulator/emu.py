"""
LMC Virtual Emulator: Main Emulator Class

The emulator is the "Computer": the register set (cpu/regs.py) plus the
100-mailbox memory (mem/memory.py). It knows nothing about source text or
labels; it only sees the Locations produced by the code generator.

Execution model (one call to step()):
  1. Fetch the mailbox at PC. DAT 0 is an implicit halt (nothing loaded
     there); any other data value means execution ran into data.
  2. Decode opcode/operand into CIR/MAR.
  3. Execute:
       0      HLT   stop, PC unchanged
       1 2 3 5 ADD SUB STA LDA   operate on mailbox MAR (must be data)
       6 7 8  BRA BRZ BRP        jump to MAR if taken, else fall through
       9      INP (operand 1) / OUT (operand 2), PC advanced first
  4. Advance PC by one unless a branch was taken.

Halting is reported by the HALT event rather than a flag; the caller is
expected to reset() or load() before stepping again.

Step outcomes:
  CONTINUE  keep going
  HALT      program finished
  INPUT     caller must call set_input() before the next step
  OUTPUT    carries the accumulator as decimal text
"""

from __future__ import annotations
import enum
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional, Set

from lmc_compiler.codegen import EMPTY, DataCell, Image, InstructionCell

from .cpu.regs import Registers, to_int16
from .mem.memory import Memory

log = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Events
# ──────────────────────────────────────────────

class EventKind(enum.Enum):
    CONTINUE = 'CONTINUE'
    HALT = 'HALT'
    INPUT = 'INPUT'
    OUTPUT = 'OUTPUT'


@dataclass(frozen=True)
class Event:
    kind: EventKind
    text: Optional[str] = None

    @classmethod
    def output(cls, text: str) -> "Event":
        return cls(EventKind.OUTPUT, text)

    def __str__(self) -> str:
        if self.kind is EventKind.OUTPUT:
            return f"OUTPUT({self.text})"
        return self.kind.value


CONTINUE = Event(EventKind.CONTINUE)
HALT = Event(EventKind.HALT)
INPUT = Event(EventKind.INPUT)


class StopReason(enum.Enum):
    HALT = 'HALT'        # HLT or empty mailbox
    BREAK = 'BREAK'      # breakpoint address hit
    INPUT = 'INPUT'      # INP with no input left
    TIMEOUT = 'TIMEOUT'  # max_steps exceeded


# ──────────────────────────────────────────────
# Runtime errors
# ──────────────────────────────────────────────

class RuntimeFault(Exception):
    """Base for errors raised by step(). Fatal to the current run."""

    def __init__(self, message: str, address: int):
        self.address = address
        super().__init__(f"Runtime error at mailbox {address:02d}: {message}")


class ExpectedInstruction(RuntimeFault):
    """PC reached a data mailbox holding a non-zero value."""

    def __init__(self, address: int, value: int):
        self.value = value
        super().__init__(
            f"ran into data ({value}) whilst running code; did you forget to halt?",
            address)


class ExpectedData(RuntimeFault):
    """ADD/SUB/STA/LDA pointed at a mailbox that holds an instruction."""

    def __init__(self, address: int, target: int):
        self.target = target
        super().__init__(
            f"operand {target:02d} holds an instruction, expected a data mailbox",
            address)


# ──────────────────────────────────────────────
# Snapshot
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class ComputerState:
    """Read-only copy of the machine, safe to hand to another thread."""
    program_counter: int
    accumulator: int
    current_instruction_register: int
    memory_address_register: int
    memory_data_register: int
    memory: tuple

    def display(self) -> str:
        return (f"PC={self.program_counter:02d} ACC={self.accumulator} "
                f"CIR={self.current_instruction_register} "
                f"MAR={self.memory_address_register:02d} "
                f"MDR={self.memory_data_register}")


# ──────────────────────────────────────────────
# Emulator
# ──────────────────────────────────────────────

class LMCEmulator:
    """Little Man Computer emulator.

    Usage:
        emu = LMCEmulator()
        emu.load(lmc_compiler.compile(source))
        while True:
            event = emu.step()
            if event is HALT:
                break
            if event is INPUT:
                emu.set_input(int(input()))
            elif event.kind is EventKind.OUTPUT:
                print(event.text)
    """

    DEFAULT_MAX_STEPS = 100_000

    def __init__(self):
        self.regs = Registers()
        self.mem = Memory()

        # Breakpoints: set of PC addresses that trigger BREAK in run()
        self._breakpoints: Set[int] = set()

        # Trace output
        self._trace = False
        self._trace_output: List[str] = []

        self.steps = 0

    # ══════════════════════════════════════════════
    # Loading
    # ══════════════════════════════════════════════

    def load(self, image: Image):
        """Replace memory with ``image`` and reset the registers."""
        self.mem.load_image(image)
        self.regs.reset()
        self.steps = 0

    def reset(self):
        """Zero all registers; memory is left as it is."""
        self.regs.reset()
        self.steps = 0

    def set_input(self, value: int):
        """Answer an INPUT event by writing the accumulator."""
        self.regs.ACC = to_int16(value)

    # ══════════════════════════════════════════════
    # Execution
    # ══════════════════════════════════════════════

    def _advance(self):
        self.regs.PC = (self.regs.PC + 1) % Memory.SIZE

    def _fetch(self) -> Optional[InstructionCell]:
        pc = self.regs.PC
        cell = self.mem.read(pc)
        if isinstance(cell, InstructionCell):
            return cell
        if cell == EMPTY:
            return None
        raise ExpectedInstruction(pc, cell.value)

    def _read_data(self, addr: int) -> int:
        cell = self.mem.read(addr)
        if not isinstance(cell, DataCell):
            raise ExpectedData(self.regs.PC, addr)
        return cell.value

    def step(self) -> Event:
        """Execute one instruction and report what happened.

        Raises ExpectedInstruction or ExpectedData; either one ends the run.
        """
        pc = self.regs.PC
        instr = self._fetch()
        if instr is None:
            self._log_step(pc, "(empty)", HALT)
            return HALT

        regs = self.regs
        regs.CIR = instr.opcode
        regs.MAR = instr.operand
        self.steps += 1

        event = self._execute(instr)
        self._log_step(pc, instr.disassemble(), event)
        return event

    def _execute(self, instr: InstructionCell) -> Event:
        regs = self.regs
        opcode = instr.opcode

        if opcode == 0:
            return HALT

        if opcode in (1, 2, 3, 5):
            value = self._read_data(regs.MAR)
            regs.MDR = value
            if opcode == 1:
                regs.ACC = to_int16(regs.ACC + value)
            elif opcode == 2:
                regs.ACC = to_int16(regs.ACC - value)
            elif opcode == 3:
                self.mem.write(regs.MAR, DataCell(regs.ACC))
            else:
                regs.ACC = value

        elif opcode in (6, 7, 8):
            if opcode == 6:
                taken = True
            elif opcode == 7:
                taken = regs.ACC == 0
            else:
                taken = regs.ACC >= 0
            if taken:
                regs.PC = regs.MAR
                return CONTINUE

        elif opcode == 9:
            self._advance()
            if instr.operand == 1:
                return INPUT
            return Event.output(str(regs.ACC))

        self._advance()
        return CONTINUE

    def run(self, max_steps: Optional[int] = None,
            inputs: Optional[Iterable[int]] = None,
            on_output: Optional[Callable[[str], None]] = None) -> StopReason:
        """Step until halt, breakpoint, missing input, or max_steps.

        Args:
            max_steps: Instruction budget before TIMEOUT
            inputs: Values handed to successive INP instructions
            on_output: Called with the text of every OUT

        Runtime faults propagate to the caller.
        """
        if max_steps is None:
            max_steps = self.DEFAULT_MAX_STEPS
        feed: Iterator[int] = iter(inputs or ())

        executed = 0
        while executed < max_steps:
            # Not on the first step, so run() can resume from a breakpoint
            if executed and self.regs.PC in self._breakpoints:
                return StopReason.BREAK
            event = self.step()
            executed += 1
            if event.kind is EventKind.HALT:
                return StopReason.HALT
            if event.kind is EventKind.INPUT:
                try:
                    self.set_input(next(feed))
                except StopIteration:
                    return StopReason.INPUT
            elif event.kind is EventKind.OUTPUT and on_output is not None:
                on_output(event.text)

        return StopReason.TIMEOUT

    # ══════════════════════════════════════════════
    # State
    # ══════════════════════════════════════════════

    def snapshot(self) -> ComputerState:
        r = self.regs
        return ComputerState(
            program_counter=r.PC,
            accumulator=r.ACC,
            current_instruction_register=r.CIR,
            memory_address_register=r.MAR,
            memory_data_register=r.MDR,
            memory=tuple(self.mem.snapshot()),
        )

    # ══════════════════════════════════════════════
    # Breakpoint API
    # ══════════════════════════════════════════════

    def add_breakpoint(self, addr: int):
        """Add a breakpoint at a mailbox. run() stops before executing it."""
        self._breakpoints.add(addr % Memory.SIZE)

    def remove_breakpoint(self, addr: int):
        self._breakpoints.discard(addr % Memory.SIZE)

    def clear_breakpoints(self):
        self._breakpoints.clear()

    # ══════════════════════════════════════════════
    # Trace / Debug
    # ══════════════════════════════════════════════

    def _log_step(self, pc: int, text: str, event: Event):
        if not self._trace:
            return
        line = f"{pc:02d}: {text:8s} {self.regs.display()} -> {event}"
        self._trace_output.append(line)
        log.debug(line)

    def enable_trace(self, enable: bool = True):
        """Enable instruction trace logging."""
        self._trace = enable

    def get_trace(self) -> str:
        return '\n'.join(self._trace_output)

    def clear_trace(self):
        self._trace_output.clear()


# The machine state described by the execution model
Computer = LMCEmulator
