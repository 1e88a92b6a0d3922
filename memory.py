import logging
import math
import re

from errors import OutOfMemoryError

log = logging.getLogger(__name__)

DEFAULT_LIMIT = 1024 * 1024 * 1024  # 1 GB
RAM_SIZE = 65536

# C64 addresses mirrored onto the display
BACKGROUND_REGISTERS = (53280, 53281)
SCREEN_BASE = 1024
SCREEN_COLS = 40
SCREEN_ROWS = 25
SCREEN_SIZE = SCREEN_COLS * SCREEN_ROWS


def text_cost(text):
    # one extra byte for the terminator the budget has always counted
    return len(text) + 1


class MemoryBudget:
    """Byte budget shared by every store that keeps text around.

    Built once at startup and handed to the program store, the variable
    store and the evaluator.
    """

    def __init__(self, limit=DEFAULT_LIMIT):
        self.limit = limit
        self.used = 0

    @property
    def free(self):
        return self.limit - self.used

    def check(self, size):
        if self.used + size > self.limit:
            log.debug("allocation of %d bytes refused (%d/%d used)", size, self.used, self.limit)
            raise OutOfMemoryError(size)

    def allocate(self, size):
        self.check(size)
        self.used += size

    def release(self, size):
        self.used = max(0, self.used - size)


class Memory:
    """The 64 KB RAM image behind PEEK and POKE."""

    def __init__(self, size=RAM_SIZE):
        self.ram = bytearray(size)

    def address(self, value):
        if not math.isfinite(value):
            return 0
        return int(value) % len(self.ram)

    def peek(self, address):
        return self.ram[self.address(address)]

    def poke(self, address, value):
        """Store ``value`` and return the (address, byte) actually written."""
        addr = self.address(address)
        byte = int(value) % 256 if math.isfinite(value) else 0
        self.ram[addr] = byte
        return addr, byte


def parse_memory_size(text):
    """Parse sizes like ``2048K``, ``512M`` or ``1G``; 0 means invalid."""
    mo = re.match(r'\s*([0-9]*\.?[0-9]+(?:[Ee][+-]?[0-9]+)?)\s*([A-Za-z]?)\s*$', str(text))
    if not mo:
        return 0
    value = float(mo.group(1))
    if value <= 0:
        return 0
    multipliers = {'': 1, 'K': 1024, 'M': 1024 ** 2, 'G': 1024 ** 3}
    suffix = mo.group(2).upper()
    if suffix not in multipliers:
        return 0
    return int(value * multipliers[suffix])


def _scaled(size):
    units = ('B', 'KB', 'MB', 'GB')
    unit = 0
    size = float(size)
    while size >= 1024 and unit < len(units) - 1:
        size /= 1024
        unit += 1
    return size, units[unit]


def format_memory_size(free, limit):
    free_value, free_unit = _scaled(free)
    limit_value, limit_unit = _scaled(limit)
    return f"{free_value:.2f} {free_unit} Free, {limit_value:.0f} {limit_unit} Allocated"
