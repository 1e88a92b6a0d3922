import math

import pytest

from errors import BasicError, OutOfMemoryError
from memory import Memory, MemoryBudget, format_memory_size, parse_memory_size, text_cost
from values import Number, Text, default_for, truth


@pytest.mark.parametrize("text, size", [
    ("1G", 1024 ** 3),
    ("512M", 512 * 1024 ** 2),
    ("2048K", 2048 * 1024),
    ("2048k", 2048 * 1024),
    ("1000", 1000),
    ("0.5M", 512 * 1024),
    ("0", 0),
    ("-1G", 0),
    ("abc", 0),
    ("1X", 0),
    ("", 0),
])
def test_parse_memory_size(text, size):
    assert parse_memory_size(text) == size


def test_format_memory_size():
    assert format_memory_size(1024 ** 3, 1024 ** 3) == "1.00 GB Free, 1 GB Allocated"
    assert format_memory_size(512 * 1024 ** 2, 1024 ** 3) == "512.00 MB Free, 1 GB Allocated"
    assert format_memory_size(100, 2048) == "100.00 B Free, 2 KB Allocated"


def test_budget_allocate_and_release():
    budget = MemoryBudget(10)
    budget.allocate(6)
    assert budget.free == 4
    with pytest.raises(OutOfMemoryError) as excinfo:
        budget.allocate(5)
    assert excinfo.value.reason == "OUT OF MEMORY"
    assert excinfo.value.requested == 5
    assert budget.used == 6
    budget.release(100)
    assert budget.used == 0


def test_out_of_memory_is_a_basic_error():
    assert issubclass(OutOfMemoryError, BasicError)


def test_text_cost_counts_terminator():
    assert text_cost("") == 1
    assert text_cost("ABC") == 4


def test_memory_wraps_address_and_value():
    memory = Memory()
    assert memory.poke(65536 + 10, 300) == (10, 44)
    assert memory.peek(10) == 44
    assert memory.poke(-1, 1) == (65535, 1)
    assert memory.poke(20, -1) == (20, 255)


def test_memory_non_finite_reads_as_zero():
    memory = Memory()
    assert memory.poke(math.nan, 5) == (0, 5)
    assert memory.poke(30, math.inf) == (30, 0)
    assert memory.peek(math.inf) == 5


def test_values_are_immutable():
    value = Number(3)
    with pytest.raises(AttributeError):
        value.value = 4


def test_value_equality_respects_type():
    assert Number(1) == Number(1.0)
    assert Number(0) != Text('')
    assert hash(Text('A')) == hash(Text('A'))


def test_number_rendering():
    assert str(Number(5)) == '5'
    assert str(Number(3.5)) == '3.5'
    assert str(Number(-1)) == '-1'
    assert str(Number(1e20)) == '1e+20'


def test_defaults_and_truth():
    assert default_for('A$') == Text('')
    assert default_for('A') == Number(0)
    assert truth(True) == Number(-1)
    assert truth(False) == Number(0)
    assert Text('9').as_number() == 0.0
