import pytest

from display import Display
from interpreter import CFBasicInterpreter
from memory import MemoryBudget


class RecordingDisplay(Display):
    """Display that records every call instead of drawing."""

    def __init__(self, rows=25, cols=40, inputs=None):
        self.rows = rows
        self.cols = cols
        self.output = []
        self.calls = []
        self.inputs = list(inputs or [])
        self.closed = False

    @property
    def text(self):
        return "".join(self.output)

    def print(self, text):
        self.output.append(text)

    def plot(self, x, y, char):
        self.calls.append(('plot', x, y, char))

    def set_background(self, color):
        self.calls.append(('set_background', color))

    def clear_screen(self):
        self.calls.append(('clear_screen',))

    def home(self):
        self.calls.append(('home',))

    def move_relative(self, dx, dy):
        self.calls.append(('move_relative', dx, dy))

    def input(self, prompt=""):
        if not self.inputs:
            raise EOFError
        return self.inputs.pop(0)

    def shutdown(self):
        self.closed = True


@pytest.fixture
def display():
    return RecordingDisplay()


@pytest.fixture
def interp(display):
    return CFBasicInterpreter(display=display, budget=MemoryBudget(1024 * 1024))


def load(interp, *lines):
    for line in lines:
        number, text = line.split(' ', 1)
        interp.program.upsert(int(number), text)


@pytest.fixture
def run(interp, display):
    """Store numbered lines, run the program and return what it printed."""
    def _run(*lines):
        load(interp, *lines)
        interp.run()
        return display.text
    return _run
