import logging
import math

from display import ConsoleDisplay
from errors import BasicError
from evaluator import Evaluator
from file_manager import FileManager
from lexer import LINE_END, Lexer
from memory import BACKGROUND_REGISTERS, SCREEN_BASE, SCREEN_SIZE, Memory, MemoryBudget
from program import ProgramStore
from stacks import CallStack, LoopStack
from variables import VariableStore

log = logging.getLogger(__name__)

# Logical resolution of PLOT/DRAW coordinates
GRAPHICS_WIDTH = 320
GRAPHICS_HEIGHT = 200

# PETSCII control codes in printed text -> display call
CONTROL_CODES = {
    147: ('clear_screen', ()),       # CLR/HOME
    19: ('home', ()),                # HOME
    17: ('move_relative', (0, 1)),   # CRSR DOWN
    145: ('move_relative', (0, -1)), # CRSR UP
    157: ('move_relative', (-1, 0)), # CRSR LEFT
    29: ('move_relative', (1, 0)),   # CRSR RIGHT
}


class Outcome:
    """What the run loop should do after one program line."""

    def __init__(self, kind, line=None, reason=None):
        self.kind = kind
        self.line = line
        self.reason = reason

    def __eq__(self, other):
        return (isinstance(other, Outcome) and self.kind == other.kind
                and self.line == other.line and self.reason == other.reason)

    def __repr__(self):
        if self.kind == 'JUMP':
            return f"Outcome(JUMP {self.line})"
        if self.kind == 'FAIL':
            return f"Outcome(FAIL {self.reason!r})"
        return f"Outcome({self.kind})"


CONTINUE = Outcome('CONTINUE')
HALT = Outcome('HALT')


def jump_to(line):
    return Outcome('JUMP', line=line)


def fail(reason):
    return Outcome('FAIL', reason=reason)


class Branch:
    """The THEN part of an IF: a line to jump to, or inline statements."""

    def __init__(self, target=None):
        self.target = target

    @property
    def is_jump(self):
        return self.target is not None

    @classmethod
    def jump(cls, line):
        return cls(line)

    @classmethod
    def inline(cls):
        return cls()

    @classmethod
    def parse(cls, lexer):
        token = lexer.peek_token()
        if token.type == 'NUMBER':
            lexer.next_token()
            return cls.jump(_to_int(token.number))
        return cls.inline()

    def __repr__(self):
        return f"Branch(jump {self.target})" if self.is_jump else "Branch(inline)"


def _to_int(number):
    return int(number) if math.isfinite(number) else 0


class CFBasicInterpreter:
    def __init__(self, display=None, budget=None, file_manager=None):
        self.display = display or ConsoleDisplay()
        self.budget = budget or MemoryBudget()
        self.file_manager = file_manager or FileManager()

        self.program = ProgramStore(self.budget)
        self.variables = VariableStore(self.budget)
        self.call_stack = CallStack()
        self.loop_stack = LoopStack()
        self.memory = Memory()
        self.evaluator = Evaluator(self.variables, self.memory, self.budget)

        self.current_line = None  # run cursor: a line number while running
        self.running = False
        self.break_requested = False
        self.exit_requested = False
        self.graphics_x = 0.0
        self.graphics_y = 0.0

    def request_break(self):
        """Ask a running program to stop at the next line boundary."""
        self.break_requested = True

    def report_error(self, reason):
        log.debug("error: %s", reason)
        self.display.print(f"?{reason} ERROR\n")

    # Program commands

    def list_program(self, start=0, end=-1):
        for text in self.program.list(start, end):
            self.display.print(text + "\n")

    def new_program(self):
        self.program.clear()
        self.variables.clear_all()
        self.call_stack.clear()
        self.loop_stack.clear()

    def load_program(self, filename):
        try:
            lines = self.file_manager.read_program(filename)
        except OSError as e:
            log.debug("load failed: %s", e)
            self.report_error("FILE NOT FOUND")
            return False

        self.new_program()
        try:
            for number, text in lines:
                self.program.upsert(number, text)
        except BasicError as e:
            self.report_error(e.reason)
            return False
        return True

    def save_program(self, filename):
        try:
            self.file_manager.write_program(filename, self.program)
        except (OSError, UnicodeError) as e:
            log.debug("save failed: %s", e)
            self.report_error("CANNOT SAVE FILE")
            return False
        return True

    # Execution

    def run(self):
        if not len(self.program):
            return

        # a break requested at the prompt must not stop this run
        self.break_requested = False
        self.running = True
        self.current_line = self.program.first()
        try:
            while self.running and self.current_line is not None:
                if self.break_requested:
                    self.display.print("\n? BREAK\n")
                    self.break_requested = False
                    break

                line = self.program.find(self.current_line)
                log.debug("-->%05d %s", line.number, line.text)
                outcome = self.execute_line(line.text)

                if outcome.kind == 'FAIL':
                    self.report_error(outcome.reason)
                    self.display.print(f"ERROR IN LINE {line.number}\n")
                    break
                elif outcome.kind == 'HALT':
                    log.debug("halt at %d", line.number)
                    break
                elif outcome.kind == 'JUMP':
                    log.debug("jump %d -> %d", line.number, outcome.line)
                    self.current_line = outcome.line
                else:
                    self.current_line = self.program.successor(line.number)
        finally:
            self.running = False
            self.current_line = None

    def execute_direct(self, text):
        """Run one line typed without a line number."""
        outcome = self.execute_line(text)
        if outcome.kind == 'FAIL':
            self.report_error(outcome.reason)
        return outcome

    def execute_line(self, text):
        lexer = Lexer(text)
        try:
            while True:
                token = lexer.next_token()
                if token.type in LINE_END:
                    return CONTINUE
                outcome = self._dispatch_statement(token, lexer)
                if outcome is not None:
                    return outcome
        except BasicError as e:
            return fail(e.reason)

    def _dispatch_statement(self, token, lexer):
        cmd = token.type

        if cmd in ('PRINT', 'QUESTION'):
            self._execute_print(lexer)

        elif cmd == 'IF':
            return self._execute_if(lexer)

        elif cmd == 'GOTO':
            return self._execute_goto(lexer)

        elif cmd in ('LET', 'IDENTIFIER'):
            self._handle_assignment(token, lexer)

        elif cmd == 'POKE':
            self._execute_poke(lexer)

        elif cmd == 'PLOT':
            x, y = self._read_pair(lexer)
            if not x.is_text and not y.is_text:
                self.graphics_x, self.graphics_y = x.value, y.value

        elif cmd == 'DRAW':
            x, y = self._read_pair(lexer)
            if not x.is_text and not y.is_text:
                self._draw_line(_to_int(self.graphics_x), _to_int(self.graphics_y),
                                _to_int(x.value), _to_int(y.value))
                self.graphics_x, self.graphics_y = x.value, y.value

        elif cmd == 'EXIT':
            self.exit_requested = True
            return HALT

        elif cmd in ('END', 'STOP'):
            return HALT

        elif cmd == 'REM':
            return CONTINUE

        elif cmd == 'ERROR':
            log.debug("ignoring unexpected %r at column %d", token.text, token.column)

        # anything else (including ':') is skipped
        return None

    def _execute_print(self, lexer):
        while True:
            if lexer.peek_token().type in ('EOF', 'NEWLINE', 'COLON'):
                self.display.print("\n")
                return

            value = self.evaluator.expression(lexer)
            if value.is_text:
                self.emit_text(value.value)
            else:
                self.display.print(str(value))

            separator = lexer.peek_token().type
            if separator == 'SEMICOLON':
                lexer.next_token()
            elif separator == 'COMMA':
                lexer.next_token()
                self.display.print("\t")
            else:
                self.display.print("\n")
                return

    def emit_text(self, text):
        """Print text, turning PETSCII cursor codes into display calls."""
        pending = []
        for char in text:
            control = CONTROL_CODES.get(ord(char))
            if control is None:
                pending.append(char)
                continue
            if pending:
                self.display.print("".join(pending))
                pending = []
            method, args = control
            getattr(self.display, method)(*args)
        if pending:
            self.display.print("".join(pending))

    def _execute_if(self, lexer):
        condition = self.evaluator.expression(lexer)
        if lexer.next_token().type != 'THEN':
            return None

        then_branch = Branch.parse(lexer)
        if condition.as_number() != 0:
            return self._take_branch(then_branch)

        # Skip the THEN part; statements after ELSE run as the rest of the line
        while True:
            token = lexer.next_token()
            if token.type in LINE_END:
                return CONTINUE
            if token.type == 'ELSE':
                return None

    def _take_branch(self, branch):
        if branch.is_jump:
            if self.program.find(branch.target) is not None:
                return jump_to(branch.target)
            log.debug("IF target %d not found, continuing", branch.target)
        # inline: the caller keeps scanning this line
        return None

    def _execute_goto(self, lexer):
        value = self.evaluator.expression(lexer)
        if value.is_text:
            return None
        if not math.isfinite(value.value):
            raise BasicError("LINE NOT FOUND")
        target = int(value.value)
        if self.program.find(target) is None:
            raise BasicError("LINE NOT FOUND")
        return jump_to(target)

    def _handle_assignment(self, token, lexer):
        # LET A = val / A = val
        if token.type == 'LET':
            token = lexer.next_token()
            if token.type != 'IDENTIFIER':
                return
        name = token.text

        if lexer.next_token().type != 'EQUAL':
            return
        self.variables.set(name, self.evaluator.expression(lexer))

    def _read_pair(self, lexer):
        first = self.evaluator.expression(lexer)
        if lexer.peek_token().type == 'COMMA':
            lexer.next_token()
        second = self.evaluator.expression(lexer)
        return first, second

    def _execute_poke(self, lexer):
        address, value = self._read_pair(lexer)
        if address.is_text or value.is_text:
            return

        addr, byte = self.memory.poke(address.value, value.value)
        if addr in BACKGROUND_REGISTERS:
            self.display.set_background(byte)
        elif SCREEN_BASE <= addr < SCREEN_BASE + SCREEN_SIZE:
            self.display.poke_char(addr, byte)

    def _draw_line(self, x1, y1, x2, y2):
        # Scale from 320x200 to the display grid, then Bresenham
        cols, rows = self.display.cols, self.display.rows
        x1 = int(x1 * cols / GRAPHICS_WIDTH)
        y1 = int(y1 * rows / GRAPHICS_HEIGHT)
        x2 = int(x2 * cols / GRAPHICS_WIDTH)
        y2 = int(y2 * rows / GRAPHICS_HEIGHT)

        clipped = _clip_segment(x1, y1, x2, y2, cols, rows)
        if clipped is None:
            log.debug("DRAW entirely off screen")
            return
        x1, y1, x2, y2 = clipped

        dx = abs(x2 - x1)
        dy = abs(y2 - y1)
        sx = 1 if x1 < x2 else -1
        sy = 1 if y1 < y2 else -1
        err = dx - dy

        while True:
            self.display.plot(x1, y1, '*')
            if x1 == x2 and y1 == y2:
                break
            e2 = 2 * err
            if e2 > -dy:
                err -= dy
                x1 += sx
            if e2 < dx:
                err += dx
                y1 += sy


def _clip_segment(x1, y1, x2, y2, cols, rows):
    """Liang-Barsky clip of a segment to the cols x rows grid.

    Returns the visible endpoints, or None when no part of the segment is
    on the grid.
    """
    dx, dy = x2 - x1, y2 - y1
    t0, t1 = 0.0, 1.0
    for p, q in ((-dx, x1), (dx, cols - 1 - x1), (-dy, y1), (dy, rows - 1 - y1)):
        if p == 0:
            if q < 0:
                return None
            continue
        t = q / p
        if p < 0:
            if t > t1:
                return None
            t0 = max(t0, t)
        else:
            if t < t0:
                return None
            t1 = min(t1, t)
    return (round(x1 + t0 * dx), round(y1 + t0 * dy),
            round(x1 + t1 * dx), round(y1 + t1 * dy))
