"""
LMC Runtime: the execution task that sits between a front end and the emulator.

A front end never touches the emulator directly. It submits requests through
a bounded channel and reads events back:

    requests                      events
    ────────                      ──────
    AssembleClicked(source)  ──>  SET_ERROR(message)   on a compile error
    SetInput(text)                CONTINUE / HALT / INPUT / OUTPUT(text)
    Step                          SET_ERROR(message)   on a runtime error
    Reset                         UPDATE_STATE(snapshot) after every request

The task handles one request at a time. The emulator is guarded by a single
lock that is held while one request is applied or a snapshot is copied, and
never across an await. Observers get read-only snapshots.

Back-pressure: the request channel holds CHANNEL_CAPACITY entries. submit()
waits for room, submit_nowait() raises asyncio.QueueFull. Nothing is dropped.

"Stop" is not a request: a driver stops by no longer sending Step.
"""

from __future__ import annotations
import asyncio
import enum
import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import lmc_compiler
from lmc_compiler import CompileError

from .cpu.regs import INT16_MAX, INT16_MIN
from .emu import ComputerState, EventKind, LMCEmulator, RuntimeFault, StopReason

log = logging.getLogger(__name__)

CHANNEL_CAPACITY = 100


# ──────────────────────────────────────────────
# Run-speed profiles
# ──────────────────────────────────────────────

RUN_SPEEDS = {
    "slow": {
        "interval": 1.0,
        "description": "One step per second",
    },
    "medium": {
        "interval": 0.25,
        "description": "Four steps per second",
    },
    "fast": {
        "interval": 0.1,
        "description": "Ten steps per second",
    },
    "instant": {
        "interval": 0.0,
        "description": "As fast as the event loop allows",
    },
}

DEFAULT_SPEED = "medium"


# ──────────────────────────────────────────────
# Requests / events
# ──────────────────────────────────────────────

class RequestKind(enum.Enum):
    ASSEMBLE = 'ASSEMBLE'
    SET_INPUT = 'SET_INPUT'
    STEP = 'STEP'
    RESET = 'RESET'


@dataclass(frozen=True)
class Request:
    kind: RequestKind
    text: str = ""

    @classmethod
    def assemble_clicked(cls, source: str) -> "Request":
        return cls(RequestKind.ASSEMBLE, source)

    @classmethod
    def set_input(cls, text: str) -> "Request":
        return cls(RequestKind.SET_INPUT, text)

    @classmethod
    def step(cls) -> "Request":
        return cls(RequestKind.STEP)

    @classmethod
    def reset(cls) -> "Request":
        return cls(RequestKind.RESET)


class RuntimeEventKind(enum.Enum):
    READY = 'READY'
    UPDATE_STATE = 'UPDATE_STATE'
    SET_ERROR = 'SET_ERROR'
    CONTINUE = 'CONTINUE'
    HALT = 'HALT'
    INPUT = 'INPUT'
    OUTPUT = 'OUTPUT'


_ENGINE_EVENTS = {
    EventKind.CONTINUE: RuntimeEventKind.CONTINUE,
    EventKind.HALT: RuntimeEventKind.HALT,
    EventKind.INPUT: RuntimeEventKind.INPUT,
    EventKind.OUTPUT: RuntimeEventKind.OUTPUT,
}


@dataclass(frozen=True)
class RuntimeEvent:
    kind: RuntimeEventKind
    text: Optional[str] = None
    state: Optional[ComputerState] = None


_CLOSE = object()


def parse_input(text: str) -> int:
    """Parse a decimal input value; malformed or out-of-range text reads as 0."""
    try:
        value = int(text.strip())
    except ValueError:
        log.warning("input %r is not a number, using 0", text)
        return 0
    if not INT16_MIN <= value <= INT16_MAX:
        log.warning("input %r does not fit in 16 bits, using 0", text)
        return 0
    return value


# ──────────────────────────────────────────────
# Runtime
# ──────────────────────────────────────────────

class Runtime:
    """Owns one emulator and serves requests for it.

    Usage:
        rt = Runtime()
        task = asyncio.create_task(rt.run())
        await rt.next_event()                      # READY
        await rt.submit(Request.assemble_clicked(src))
        ...
        await rt.close()
        await task
    """

    def __init__(self, capacity: int = CHANNEL_CAPACITY):
        self._computer = LMCEmulator()
        self._lock = threading.Lock()
        self._requests: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self._events: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self._faulted = False

    # ── Front-end side ──────────────────────

    async def submit(self, request: Request):
        """Queue a request, waiting while the channel is full."""
        await self._requests.put(request)

    def submit_nowait(self, request: Request):
        """Queue a request or raise asyncio.QueueFull."""
        self._requests.put_nowait(request)

    async def close(self):
        """Ask the task to finish once queued requests are handled."""
        await self._requests.put(_CLOSE)

    async def next_event(self) -> RuntimeEvent:
        return await self._events.get()

    def snapshot(self) -> ComputerState:
        with self._lock:
            return self._computer.snapshot()

    # ── Task side ───────────────────────────

    async def run(self):
        """Serve requests until close()."""
        await self._events.put(RuntimeEvent(RuntimeEventKind.READY))
        while True:
            request = await self._requests.get()
            if request is _CLOSE:
                log.debug("runtime closed")
                return
            for event in self._handle(request):
                await self._events.put(event)
            await self._events.put(
                RuntimeEvent(RuntimeEventKind.UPDATE_STATE, state=self.snapshot()))

    def _handle(self, request: Request) -> List[RuntimeEvent]:
        log.debug("request %s", request.kind.value)
        with self._lock:
            if request.kind is RequestKind.ASSEMBLE:
                return self._assemble(request.text)
            if request.kind is RequestKind.SET_INPUT:
                self._computer.set_input(parse_input(request.text))
                return []
            if request.kind is RequestKind.STEP:
                return self._step()
            if request.kind is RequestKind.RESET:
                self._computer.reset()
                self._faulted = False
                return []
        raise ValueError(f"unknown request: {request!r}")

    def _assemble(self, source: str) -> List[RuntimeEvent]:
        try:
            image = lmc_compiler.compile(source)
        except CompileError as e:
            log.info("assemble failed: %s", e)
            return [RuntimeEvent(RuntimeEventKind.SET_ERROR, text=str(e))]
        self._computer.load(image)
        self._faulted = False
        return []

    def _step(self) -> List[RuntimeEvent]:
        if self._faulted:
            return [RuntimeEvent(RuntimeEventKind.SET_ERROR,
                                 text="Execution stopped after an error; reset before stepping again")]
        try:
            event = self._computer.step()
        except RuntimeFault as e:
            self._faulted = True
            log.info("%s", e)
            return [RuntimeEvent(RuntimeEventKind.SET_ERROR, text=str(e))]
        return [RuntimeEvent(_ENGINE_EVENTS[event.kind], text=event.text)]


# ──────────────────────────────────────────────
# Stepping driver
# ──────────────────────────────────────────────

@dataclass
class RunResult:
    reason: Optional[StopReason]
    outputs: List[str] = field(default_factory=list)
    error: Optional[str] = None
    state: Optional[ComputerState] = None
    steps: int = 0


async def _outcome(runtime: Runtime):
    """Read events up to the UPDATE_STATE that closes one request."""
    outcome = None
    while True:
        event = await runtime.next_event()
        if event.kind is RuntimeEventKind.UPDATE_STATE:
            return outcome, event.state
        outcome = event


async def auto_run(runtime: Runtime, speed: str = DEFAULT_SPEED,
                   inputs: Iterable[int] = (),
                   max_steps: Optional[int] = None) -> RunResult:
    """Issue Step requests at the speed profile's interval.

    INPUT is answered with the next value from ``inputs``; the run ends on
    HALT, on an error, when input runs out, or after ``max_steps``.
    Must be the only reader of the runtime's events while it runs.
    """
    interval = RUN_SPEEDS[speed]["interval"]
    feed = iter(inputs)
    result = RunResult(reason=None)

    while max_steps is None or result.steps < max_steps:
        await runtime.submit(Request.step())
        result.steps += 1
        event, result.state = await _outcome(runtime)

        if event.kind is RuntimeEventKind.SET_ERROR:
            result.error = event.text
            return result
        if event.kind is RuntimeEventKind.HALT:
            result.reason = StopReason.HALT
            return result
        if event.kind is RuntimeEventKind.OUTPUT:
            result.outputs.append(event.text)
        elif event.kind is RuntimeEventKind.INPUT:
            try:
                value = next(feed)
            except StopIteration:
                result.reason = StopReason.INPUT
                return result
            await runtime.submit(Request.set_input(str(value)))
            _, result.state = await _outcome(runtime)

        if interval:
            await asyncio.sleep(interval)

    result.reason = StopReason.TIMEOUT
    return result


async def run_source(source: str, speed: str = DEFAULT_SPEED,
                     inputs: Iterable[int] = (),
                     max_steps: Optional[int] = None) -> RunResult:
    """Assemble ``source`` in a fresh Runtime and auto-run it to completion."""
    runtime = Runtime()
    task = asyncio.create_task(runtime.run())
    try:
        await runtime.next_event()  # READY
        await runtime.submit(Request.assemble_clicked(source))
        event, state = await _outcome(runtime)
        if event is not None and event.kind is RuntimeEventKind.SET_ERROR:
            return RunResult(reason=None, error=event.text, state=state)
        return await auto_run(runtime, speed, inputs, max_steps)
    finally:
        await runtime.close()
        await task
