"""GOSUB return stack and FOR loop stack.

Both are kept and cleared with the rest of the interpreter state, but no
statement pushes onto them yet.
"""

from errors import BasicError


class CallFrame:
    def __init__(self, return_line):
        self.return_line = return_line

    def __repr__(self):
        return f"CallFrame({self.return_line})"


class LoopContext:
    def __init__(self, var_name, limit, step, line):
        self.var_name = var_name
        self.limit = limit
        self.step = step
        self.line = line

    def __repr__(self):
        return f"LoopContext({self.var_name!r}, {self.limit}, {self.step}, {self.line})"


class CallStack:
    def __init__(self):
        self.frames = []

    def __len__(self):
        return len(self.frames)

    def push(self, return_line):
        self.frames.append(CallFrame(return_line))

    def pop(self):
        if not self.frames:
            raise BasicError("RETURN WITHOUT GOSUB")
        return self.frames.pop().return_line

    def clear(self):
        self.frames = []


class LoopStack:
    def __init__(self):
        self.loops = []

    def __len__(self):
        return len(self.loops)

    def push(self, var_name, limit, step, line):
        self.loops.append(LoopContext(var_name, limit, step, line))

    def find(self, var_name):
        """Innermost loop over ``var_name`` (case-insensitive), or None."""
        for loop in reversed(self.loops):
            if loop.var_name.upper() == var_name.upper():
                return loop
        return None

    def pop(self):
        if self.loops:
            self.loops.pop()

    def clear(self):
        self.loops = []
