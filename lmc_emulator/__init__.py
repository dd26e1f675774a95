# LMC Virtual Emulator: Little Man Computer CPU simulator
# Part of the LMC assembler toolchain
#
# Layout:
#   cpu/regs.py    register set (PC, ACC, CIR, MAR, MDR)
#   mem/memory.py  100 mailboxes of lmc_compiler Locations
#   emu.py         fetch/decode/execute step() and run()
#   runtime.py     request/event task for front ends

from .emu import (
    CONTINUE, HALT, INPUT, Computer, ComputerState, Event, EventKind,
    ExpectedData, ExpectedInstruction, LMCEmulator, RuntimeFault, StopReason,
)
from .runtime import (
    DEFAULT_SPEED, RUN_SPEEDS, Request, RequestKind, RunResult, Runtime,
    RuntimeEvent, RuntimeEventKind, auto_run, run_source,
)
