"""
LMC Virtual Emulator: 100-Mailbox Memory

Memory is a flat list of 100 Locations (see lmc_compiler.codegen). Every
mailbox holds either an instruction word or a data value; the emulator uses
that distinction to catch a program running into its own data.

Power-on state is DAT 0 in every mailbox.
"""

from typing import Callable, Dict, Iterable, List

from lmc_compiler.codegen import EMPTY, MEMORY_SIZE, Location, empty_image


class Memory:
    """100 mailboxes with watchpoint support."""

    SIZE = MEMORY_SIZE

    def __init__(self):
        self._cells: List[Location] = empty_image()

        # Watchpoints: addr -> callback(addr, old, new)
        self._watchpoints: Dict[int, List[Callable]] = {}

    # --- Core read/write ---

    def read(self, addr: int) -> Location:
        return self._cells[addr]

    def write(self, addr: int, value: Location):
        old = self._cells[addr]
        self._cells[addr] = value
        for cb in self._watchpoints.get(addr, ()):
            cb(addr, old, value)

    def __getitem__(self, addr: int) -> Location:
        return self._cells[addr]

    def __len__(self) -> int:
        return self.SIZE

    def __iter__(self):
        return iter(self._cells)

    # --- Loading ---

    def load_image(self, image: Iterable[Location]):
        """Replace every mailbox with ``image`` (exactly 100 Locations)."""
        cells = list(image)
        if len(cells) != self.SIZE:
            raise ValueError(f"image must have {self.SIZE} mailboxes, got {len(cells)}")
        self._cells = cells

    def clear(self):
        """Return every mailbox to DAT 0."""
        self._cells = empty_image()

    def snapshot(self) -> List[Location]:
        """Independent copy of the mailboxes (Locations are immutable)."""
        return list(self._cells)

    def is_empty(self) -> bool:
        return all(cell == EMPTY for cell in self._cells)

    # --- Watchpoints ---

    def add_watchpoint(self, addr: int, callback: Callable):
        self._watchpoints.setdefault(addr, []).append(callback)

    def clear_watchpoints(self):
        self._watchpoints.clear()
