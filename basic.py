import argparse
import logging
import queue
import re
import signal
import sys
import threading

from config import load_config
from display import ConsoleDisplay, Display
from errors import BasicError
from file_manager import FileManager
from interpreter import CFBasicInterpreter
from lexer import Lexer
from memory import MemoryBudget, format_memory_size, parse_memory_size

try:
    import tkinter as tk
    from tkinter import font
    HAS_TK = True
except ImportError:
    HAS_TK = False

VERSION = "1.0"

NUMBERED_LINE = re.compile(r'^[ \t]*(\d+)[ \t]*(.*)$', re.DOTALL)

# C64 palette for the Tk window background
C64_COLORS = (
    "#000000", "#FFFFFF", "#880000", "#AAFFEE", "#CC44CC", "#00CC55",
    "#0000AA", "#EEEE77", "#DD8855", "#664400", "#FF7777", "#333333",
    "#777777", "#AAFF66", "#0088FF", "#BBBBBB",
)

log = logging.getLogger(__name__)


class GuiDisplay(Display):
    rows = 24
    cols = 80

    def __init__(self, gui):
        self.gui = gui
        self.input_queue = queue.Queue()

    def print(self, text):
        self.gui.write(text)

    def plot(self, x, y, char):
        if 0 <= x < self.cols and 0 <= y < self.rows:
            self.gui.plot(x, y, char)

    def set_background(self, color):
        self.gui.set_background(C64_COLORS[int(color) & 15])

    def clear_screen(self):
        self.gui.clear_screen()

    def home(self):
        self.gui.move_cursor(0, 0)

    def move_relative(self, dx, dy):
        self.gui.move_relative(dx, dy)

    def input(self, prompt=""):
        self.print(prompt)
        self.gui.enable_input()
        return self.input_queue.get()

    def shutdown(self):
        self.gui.shutdown()


class TerminalGUI:
    """Tk text widget driven as an overwrite-mode character grid.

    Every public method may be called from the REPL thread; the work is
    handed to the Tk loop with ``after_idle``.
    """

    WIDGET_OPTIONS = {
        'bg': C64_COLORS[6], 'fg': "#AAAAFF", 'insertbackground': "#AAAAFF",
        'width': GuiDisplay.cols, 'height': GuiDisplay.rows,
        'wrap': 'none', 'padx': 5, 'pady': 5,
    }

    def __init__(self, root):
        self.root = root
        root.title("CFBasic")
        root.resizable(False, False)

        self.text_widget = tk.Text(root, font=font.Font(family="Courier", size=14),
                                   **self.WIDGET_OPTIONS)
        self.text_widget.pack(fill=tk.BOTH, expand=True)
        self.text_widget.bind("<Key>", self.on_key)
        # clicks only focus, the cursor stays where the program left it
        self.text_widget.bind("<Button-1>", lambda e: self.text_widget.focus_set() or "break")

        self.display = None
        self.break_handler = None
        self.input_enabled = False
        self.current_input = []

    def set_display(self, display):
        self.display = display

    def _later(self, func, *args):
        self.root.after_idle(func, *args)

    # Calls from the display

    def write(self, text):
        self._later(self._write_now, text)

    def plot(self, x, y, char):
        self._later(self._plot_now, x, y, char)

    def clear_screen(self):
        self._later(self._clear_now)

    def set_background(self, color):
        self._later(self.text_widget.configure, {'bg': color})

    def move_cursor(self, col, row):
        self._later(self._goto, col, row)

    def move_relative(self, dx, dy):
        self._later(self._step, dx, dy)

    def enable_input(self):
        self._later(self._open_input)

    def shutdown(self):
        self.root.after(100, self.root.destroy)

    # Tk-thread side

    def _cursor(self):
        line, col = self.text_widget.index(tk.INSERT).split('.')
        return int(col), int(line) - 1

    def _goto(self, col, row):
        widget = self.text_widget
        lines = int(widget.index('end-1c').split('.')[0])
        if lines <= row:
            widget.insert(tk.END, "\n" * (row + 1 - lines))
        width = len(widget.get(f"{row + 1}.0", f"{row + 1}.end"))
        if width < col:
            widget.insert(f"{row + 1}.end", " " * (col - width))
        widget.mark_set(tk.INSERT, f"{row + 1}.{col}")

    def _step(self, dx, dy):
        col, row = self._cursor()
        self._goto(max(0, col + dx), max(0, row + dy))

    def _put(self, char):
        widget = self.text_widget
        at_line_end = widget.get(tk.INSERT) == '\n' or widget.compare(tk.INSERT, "==", "end-1c")
        if not at_line_end:
            widget.delete(tk.INSERT)
        # the insert mark moves past the new character
        widget.insert(tk.INSERT, char)

    def _write_now(self, text):
        for char in text:
            col, row = self._cursor()
            if char == '\n':
                self._goto(0, row + 1)
            elif char == '\t':
                for _ in range(8 - col % 8):
                    self._put(' ')
            else:
                self._put(char)
        self.text_widget.see(tk.INSERT)

    def _plot_now(self, x, y, char):
        saved = self.text_widget.index(tk.INSERT)
        self._goto(x, y)
        self._put(char)
        self.text_widget.mark_set(tk.INSERT, saved)

    def _clear_now(self):
        self.text_widget.delete('1.0', tk.END)
        self.text_widget.mark_set(tk.INSERT, '1.0')

    def _open_input(self):
        self.input_enabled = True
        self.current_input = []
        self.text_widget.focus_set()

    def on_key(self, event):
        if event.keysym == 'Escape':
            # RUN/STOP
            if self.break_handler:
                self.break_handler()
            return "break"
        if not self.input_enabled:
            return "break"

        if event.keysym == 'Return':
            self.input_enabled = False
            self.text_widget.insert(tk.INSERT, "\n")
            self.text_widget.see(tk.END)
            self.display.input_queue.put("".join(self.current_input))
            return "break"
        if event.keysym == 'BackSpace':
            if not self.current_input:
                return "break"
            self.current_input.pop()
        elif event.char and event.char.isprintable():
            self.current_input.append(event.char)
        # let Tk echo or erase the character


class BasicCLI:
    def __init__(self, display, budget=None, file_manager=None):
        self.display = display
        self.interpreter = CFBasicInterpreter(display=display, budget=budget,
                                              file_manager=file_manager)

    def print_banner(self):
        budget = self.interpreter.budget
        cols = self.display.cols
        line1 = f"**** CFBasic V{VERSION} ****"
        line2 = "A Microsoft BASIC Interpreter for Modern Systems"
        mem = format_memory_size(budget.free, budget.limit).upper()

        text = " " * max(0, (cols - len(line1)) // 2) + line1 + "\n"
        text += " " * max(0, (cols - len(line2)) // 2) + line2 + "\n\n"
        text += f" {mem}\n\nREADY.\n"
        self.display.print(text)

    def handle_input(self, user_input):
        user_input = user_input.strip()
        if not user_input:
            return

        mo = NUMBERED_LINE.match(user_input)
        if mo:
            try:
                self.interpreter.program.upsert(int(mo.group(1)), mo.group(2))
            except BasicError as e:
                self.interpreter.report_error(e.reason)
            return

        self.execute_immediate(user_input)
        if not self.interpreter.exit_requested:
            self.display.print("\nREADY.\n")

    def execute_immediate(self, line):
        lexer = Lexer(line)
        token = lexer.next_token()
        cmd = token.type

        if cmd == 'LIST':
            start, end = 0, -1
            token = lexer.next_token()
            if token.type == 'NUMBER':
                start = int(token.number)
                token = lexer.next_token()
                if token.type in ('COMMA', 'MINUS'):
                    token = lexer.next_token()
                    if token.type == 'NUMBER':
                        end = int(token.number)
            self.interpreter.list_program(start, end)
        elif cmd == 'RUN':
            self.do_run()
        elif cmd == 'NEW':
            self.interpreter.new_program()
        elif cmd in ('LOAD', 'SAVE'):
            token = lexer.next_token()
            if token.type != 'STRING':
                self.interpreter.report_error("FILENAME REQUIRED")
            elif cmd == 'LOAD':
                self.interpreter.load_program(token.text)
            else:
                self.interpreter.save_program(token.text)
        elif cmd == 'EXIT':
            self.interpreter.exit_requested = True
        else:
            self.interpreter.execute_direct(line)

    def do_run(self):
        # Ctrl-C during a run only raises the break flag
        in_main_thread = threading.current_thread() is threading.main_thread()
        if in_main_thread:
            previous = signal.signal(signal.SIGINT, self._on_interrupt)
        try:
            self.interpreter.run()
        finally:
            if in_main_thread:
                signal.signal(signal.SIGINT, previous)

    def _on_interrupt(self, signum, frame):
        self.interpreter.request_break()

    def run_repl(self):
        self.display.clear_screen()
        self.print_banner()

        while not self.interpreter.exit_requested:
            try:
                user_input = self.display.input("")
            except EOFError:
                break
            except KeyboardInterrupt:
                self.display.print("\n? BREAK\nREADY.\n")
                continue
            self.handle_input(user_input)

        self.display.shutdown()


def check_tk_availability():
    """Checks if Tkinter can be initialized without crashing (via subprocess)."""
    import subprocess
    try:
        cmd = [sys.executable, "-c", "import tkinter as tk; root = tk.Tk(); root.destroy()"]
        subprocess.check_call(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, timeout=2)
        return True
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired, FileNotFoundError):
        return False


def build_parser():
    parser = argparse.ArgumentParser(prog="cfbasic", description="CFBasic interpreter")
    parser.add_argument('-M', '--MEM', metavar='SIZE',
                        help='set memory limit (e.g., 1G, 512M, 2048K)')
    parser.add_argument('--gui', action='store_true', help='open the Tk terminal window')
    parser.add_argument('--debug', action='store_true', help='write a debug log to debug.txt')
    parser.add_argument('-v', '--version', action='version', version=f"CFBASIC V{VERSION}")
    parser.add_argument('filename', nargs='?', help='program to load and run')
    return parser


def run_gui(budget, file_manager):
    root = tk.Tk()
    gui = TerminalGUI(root)
    display = GuiDisplay(gui)
    gui.set_display(display)

    cli = BasicCLI(display, budget, file_manager)
    gui.break_handler = cli.interpreter.request_break

    t = threading.Thread(target=cli.run_repl, daemon=True)
    t.start()

    root.mainloop()


def main(argv=None):
    args = build_parser().parse_args(argv)
    settings, disks = load_config()

    if args.debug:
        logging.basicConfig(
            filename='debug.txt',
            filemode='w',
            level=logging.DEBUG,
            format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        )

    mem = args.MEM or settings['MEM']
    limit = parse_memory_size(mem)
    if limit == 0:
        print(f"Invalid memory size: {mem}", file=sys.stderr)
        return 1

    budget = MemoryBudget(limit)
    file_manager = FileManager(disks)
    log.info("memory limit %d bytes", limit)

    try:
        if args.filename:
            interp = CFBasicInterpreter(ConsoleDisplay(), budget, file_manager)
            if interp.load_program(args.filename):
                interp.run()
            return 0

        use_gui = args.gui or settings['DISPLAY'].upper() == 'GUI'
        if use_gui and not (HAS_TK and check_tk_availability()):
            print("Tkinter not available. Falling back to console mode...")
            use_gui = False

        if use_gui:
            try:
                run_gui(budget, file_manager)
                return 0
            except tk.TclError as e:
                print(f"Failed to initialize GUI: {e}")
                print("Falling back to console mode...")

        BasicCLI(ConsoleDisplay(), budget, file_manager).run_repl()
        return 0
    except MemoryError:
        sys.stderr.write("?SYSTEM OUT OF MEMORY ERROR\n")
        return 1


if __name__ == "__main__":
    sys.exit(main())
