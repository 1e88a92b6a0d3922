import shutil
import sys

from memory import SCREEN_BASE, SCREEN_COLS, SCREEN_ROWS, SCREEN_SIZE

# C64 colour index -> ANSI background code
ANSI_BACKGROUNDS = (
    40,   # black
    107,  # white
    41,   # red
    106,  # cyan
    45,   # purple
    42,   # green
    44,   # blue
    103,  # yellow
    43,   # orange
    101,  # brown
    101,  # light red
    100,  # grey 1
    100,  # grey 2
    102,  # light green
    104,  # light blue
    100,  # grey 3
)


def screen_code_to_char(code):
    """Map a C64 screen code (as POKEd into screen RAM) to a character."""
    if 1 <= code <= 31:
        return chr(code + 64)   # A-Z [ \ ] ^ _
    elif 32 <= code <= 63:
        return chr(code)        # space, digits, punctuation
    elif 64 <= code <= 95:
        return chr(code + 32)   # lower case
    elif 96 <= code <= 127:
        return chr(code)        # graphics
    return '?'


class Display:
    """Output surface the interpreter talks to.

    Subclasses provide the drawing primitives; ``poke_char`` is shared and
    maps the 40x25 screen RAM onto whatever grid the subclass has.
    """

    rows = 24
    cols = 80

    def print(self, text):
        raise NotImplementedError

    def plot(self, x, y, char):
        raise NotImplementedError

    def set_background(self, color):
        pass

    def clear_screen(self):
        pass

    def home(self):
        pass

    def move_relative(self, dx, dy):
        pass

    def input(self, prompt=""):
        raise EOFError

    def shutdown(self):
        pass

    def poke_char(self, address, byte):
        offset = address - SCREEN_BASE
        if offset < 0 or offset >= SCREEN_SIZE:
            return
        row, col = divmod(offset, SCREEN_COLS)
        self.plot(col * self.cols // SCREEN_COLS,
                  row * self.rows // SCREEN_ROWS,
                  screen_code_to_char(byte))


class ConsoleDisplay(Display):
    """ANSI terminal display."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        size = shutil.get_terminal_size((80, 24))
        self.cols = size.columns or 80
        self.rows = size.lines or 24

    def _emit(self, text):
        self.stream.write(text)
        self.stream.flush()

    def print(self, text):
        self._emit(text)

    def plot(self, x, y, char):
        if x < 0 or x >= self.cols or y < 0 or y >= self.rows:
            return
        # \033[<row>;<col>H is 1-based
        self._emit(f"\033[{y + 1};{x + 1}H{char}")

    def set_background(self, color):
        self._emit(f"\033[{ANSI_BACKGROUNDS[int(color) & 15]}m")

    def clear_screen(self):
        self._emit("\033[2J\033[H")

    def home(self):
        self._emit("\033[H")

    def move_relative(self, dx, dy):
        if dy < 0: self._emit(f"\033[{-dy}A")  # Up
        if dy > 0: self._emit(f"\033[{dy}B")   # Down
        if dx < 0: self._emit(f"\033[{-dx}D")  # Left
        if dx > 0: self._emit(f"\033[{dx}C")   # Right

    def input(self, prompt=""):
        return input(prompt)
