"""
Every program under examples/ must assemble, and run to the expected output.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pathlib import Path

import pytest
from lmc_compiler import compile
from lmc_emulator import LMCEmulator, StopReason

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


def _run(name, inputs):
    emu = LMCEmulator()
    emu.load(compile((EXAMPLES / name).read_text()))
    outputs = []
    reason = emu.run(inputs=inputs, on_output=outputs.append)
    return reason, outputs


@pytest.mark.parametrize("path", sorted(EXAMPLES.glob("*.lmc")), ids=lambda p: p.name)
def test_example_assembles(path):
    image = compile(path.read_text())
    assert len(image) == 100


@pytest.mark.parametrize("name,inputs,expected", [
    ("add.lmc", [3, 4], ["7"]),
    ("countdown.lmc", [3], ["3", "2", "1", "0"]),
    ("multiply.lmc", [6, 7], ["42"]),
    ("max.lmc", [5, 9], ["9"]),
    ("max.lmc", [9, 5], ["9"]),
])
def test_example_output(name, inputs, expected):
    reason, outputs = _run(name, inputs)
    assert reason is StopReason.HALT
    assert outputs == expected
