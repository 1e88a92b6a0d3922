import bisect

from errors import OutOfMemoryError
from memory import text_cost


class ProgramLine:
    def __init__(self, number, text):
        self.number = number
        self.text = text

    def __repr__(self):
        return f"ProgramLine({self.number}, {self.text!r})"

    def __str__(self):
        return f"{self.number} {self.text}"


class ProgramStore:
    """Numbered program lines kept in ascending order.

    ``numbers`` is the sorted key list, ``lines`` maps number -> text.
    """

    def __init__(self, budget):
        self.budget = budget
        self.lines = {}
        self.numbers = []

    def __len__(self):
        return len(self.numbers)

    def __iter__(self):
        for number in self.numbers:
            yield ProgramLine(number, self.lines[number])

    def upsert(self, number, text):
        if not text:
            self.delete(number)
            return

        old = self.lines.get(number)
        if old is not None:
            self.budget.release(text_cost(old))
        try:
            self.budget.allocate(text_cost(text))
        except OutOfMemoryError:
            if old is not None:
                self.budget.allocate(text_cost(old))
            raise

        if old is None:
            bisect.insort(self.numbers, number)
        self.lines[number] = text

    def delete(self, number):
        text = self.lines.pop(number, None)
        if text is None:
            return
        self.budget.release(text_cost(text))
        del self.numbers[bisect.bisect_left(self.numbers, number)]

    def find(self, number):
        """Return the ProgramLine for ``number`` or None."""
        idx = bisect.bisect_left(self.numbers, number)
        if idx < len(self.numbers) and self.numbers[idx] == number:
            return ProgramLine(number, self.lines[number])
        return None

    def first(self):
        return self.numbers[0] if self.numbers else None

    def successor(self, number):
        """Line number following ``number`` in listing order, or None."""
        idx = bisect.bisect_right(self.numbers, number)
        if idx < len(self.numbers):
            return self.numbers[idx]
        return None

    def list(self, start=0, end=-1):
        lines = []
        for line in self:
            if line.number >= start and (end == -1 or line.number <= end):
                lines.append(str(line))
        return lines

    def clear(self):
        for text in self.lines.values():
            self.budget.release(text_cost(text))
        self.lines = {}
        self.numbers = []
