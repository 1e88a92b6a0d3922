import pytest

from basic import HAS_TK, BasicCLI, GuiDisplay, TerminalGUI, main
from conftest import RecordingDisplay
from memory import MemoryBudget


@pytest.fixture
def cli(display):
    return BasicCLI(display, MemoryBudget(1024 * 1024))


def enter(cli, *lines):
    for line in lines:
        cli.handle_input(line)


def test_numbered_lines_are_stored_silently(cli, display):
    enter(cli, '20 END', '10 PRINT "HI"')
    assert display.text == ""
    assert [line.number for line in cli.interpreter.program] == [10, 20]


def test_bare_line_number_deletes(cli):
    enter(cli, '10 PRINT "HI"', '20 END', '10')
    assert [line.number for line in cli.interpreter.program] == [20]


def test_blank_input_is_ignored(cli, display):
    enter(cli, '   ')
    assert display.text == ""


def test_run_prints_ready(cli, display):
    enter(cli, '10 PRINT "HI"', 'RUN')
    assert display.text == "HI\n\nREADY.\n"


@pytest.mark.parametrize("command, expected", [
    ('LIST', ["10", "20", "30", "40"]),
    ('list 20', ["20", "30", "40"]),
    ('LIST 20,30', ["20", "30"]),
    ('LIST 20-30', ["20", "30"]),
])
def test_list_forms(cli, display, command, expected):
    enter(cli, '10 REM', '20 REM', '30 REM', '40 REM', command)
    listing = "".join(f"{n} REM\n" for n in expected)
    assert display.text == listing + "\nREADY.\n"


def test_new_clears_program(cli, display):
    enter(cli, '10 END', 'A = 3', 'NEW', 'LIST')
    assert len(cli.interpreter.program) == 0
    assert len(cli.interpreter.variables) == 0
    assert display.text == "\nREADY.\n" * 3


@pytest.mark.parametrize("command", ['LOAD', 'SAVE', 'LOAD prog'])
def test_load_and_save_need_a_file_name(cli, display, command):
    enter(cli, command)
    assert display.text == "?FILENAME REQUIRED ERROR\n\nREADY.\n"


def test_save_then_load(cli, display, tmp_path):
    path = tmp_path / "prog.bas"
    enter(cli, '10 PRINT "SAVED"', f'SAVE "{path}"', 'NEW', f'LOAD "{path}"', 'RUN')
    assert path.read_text() == '10 PRINT "SAVED"\n'
    assert display.text.endswith("SAVED\n\nREADY.\n")


def test_immediate_statement(cli, display):
    enter(cli, 'PRINT 1+1')
    assert display.text == "2\n\nREADY.\n"


def test_immediate_error(cli, display):
    enter(cli, 'GOTO 50')
    assert display.text == "?LINE NOT FOUND ERROR\n\nREADY.\n"


def test_exit_suppresses_ready(cli, display):
    enter(cli, 'EXIT')
    assert cli.interpreter.exit_requested
    assert display.text == ""


def test_banner(cli, display):
    cli.print_banner()
    lines = display.text.split("\n")
    assert lines[0] == " " * 9 + "**** CFBasic V1.0 ****"
    assert lines[1].strip() == "A Microsoft BASIC Interpreter for Modern Systems"
    assert lines[3] == " 1.00 MB FREE, 1 MB ALLOCATED"
    assert display.text.endswith("\nREADY.\n")


def test_repl_runs_until_end_of_input():
    display = RecordingDisplay(inputs=['10 PRINT "HI"', 'RUN'])
    BasicCLI(display, MemoryBudget(4096)).run_repl()
    assert display.calls[0] == ('clear_screen',)
    assert display.text.endswith("READY.\nHI\n\nREADY.\n")
    assert display.closed


def test_repl_stops_on_exit():
    display = RecordingDisplay(inputs=['EXIT', 'PRINT "NEVER"'])
    BasicCLI(display, MemoryBudget(4096)).run_repl()
    assert "NEVER" not in display.text
    assert display.inputs == ['PRINT "NEVER"']
    assert display.closed


class InterruptingDisplay(RecordingDisplay):
    def input(self, prompt=""):
        item = super().input(prompt)
        if item is KeyboardInterrupt:
            raise KeyboardInterrupt
        return item


def test_repl_ctrl_c_at_prompt():
    display = InterruptingDisplay(inputs=[KeyboardInterrupt, 'PRINT "OK"'])
    BasicCLI(display, MemoryBudget(4096)).run_repl()
    assert display.text.endswith("\n? BREAK\nREADY.\nOK\n\nREADY.\n")


def test_main_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(['-v'])
    assert excinfo.value.code == 0
    assert capsys.readouterr().out.strip() == "CFBASIC V1.0"


def test_main_invalid_memory_size(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert main(['-M', 'lots']) == 1
    assert "Invalid memory size: lots" in capsys.readouterr().err


def test_main_memory_size_from_config(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "cfbasic.cfg").write_text("MEM = 0\n")
    assert main([]) == 1
    assert "Invalid memory size: 0" in capsys.readouterr().err


def test_main_runs_a_file(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "hello.bas").write_text('10 PRINT "HELLO"\n20 END\n')
    assert main(['--MEM', '64K', 'hello.bas']) == 0
    assert capsys.readouterr().out == "HELLO\n"


def test_main_missing_file(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert main(['missing.bas']) == 0
    assert capsys.readouterr().out == "?FILE NOT FOUND ERROR\n"


def test_main_finds_file_on_configured_disk(tmp_path, monkeypatch, capsys):
    disk = tmp_path / "disk"
    disk.mkdir()
    (disk / "game.bas").write_text('10 PRINT "FOUND"\n')
    (tmp_path / "cfbasic.cfg").write_text(f"D0 = {disk}\n")
    monkeypatch.chdir(tmp_path)
    assert main(['game.bas']) == 0
    assert capsys.readouterr().out == "FOUND\n"


def test_break_at_the_prompt_does_not_stop_next_run(cli, display):
    enter(cli, '10 PRINT "HI"')
    cli.interpreter.request_break()
    enter(cli, 'RUN')
    assert display.text == "HI\n\nREADY.\n"


class FakeEvent:
    def __init__(self, keysym, char=""):
        self.keysym = keysym
        self.char = char


class FakeTextWidget:
    def __init__(self):
        self.inserted = []

    def insert(self, index, text):
        self.inserted.append(text)

    def see(self, index):
        pass


def bare_gui():
    # skip Tk window creation; only the key handling is exercised
    gui = TerminalGUI.__new__(TerminalGUI)
    gui.text_widget = FakeTextWidget()
    gui.display = GuiDisplay(gui)
    gui.break_handler = None
    gui.input_enabled = False
    gui.current_input = []
    return gui


@pytest.mark.skipif(not HAS_TK, reason="tkinter not installed")
def test_gui_keys_build_an_input_line():
    gui = bare_gui()
    gui.input_enabled = True
    for char in "PRX":
        assert gui.on_key(FakeEvent(char, char)) is None
    gui.on_key(FakeEvent("BackSpace"))
    gui.on_key(FakeEvent("Return"))
    assert gui.display.input_queue.get_nowait() == "PR"
    assert not gui.input_enabled
    assert gui.on_key(FakeEvent("A", "A")) == "break"


@pytest.mark.skipif(not HAS_TK, reason="tkinter not installed")
def test_gui_escape_requests_break_while_running():
    gui = bare_gui()
    cli = BasicCLI(RecordingDisplay(), MemoryBudget(4096))
    gui.break_handler = cli.interpreter.request_break
    assert gui.on_key(FakeEvent("Escape")) == "break"
    assert cli.interpreter.break_requested
