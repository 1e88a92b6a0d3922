from errors import OutOfMemoryError
from memory import text_cost
from values import Number, Text


class Variable:
    def __init__(self, name, value):
        self.name = name
        self.value = value

    @property
    def type(self):
        return 'STRING' if self.value.is_text else 'NUMBER'

    def __repr__(self):
        return f"Variable({self.name!r}, {self.value!r})"


class VariableStore:
    """Case-insensitive name -> Variable map.

    The budget is charged for each name and for the text a variable holds;
    rebinding releases the old text before the new value is stored.
    """

    def __init__(self, budget):
        self.budget = budget
        self.variables = {}

    def __len__(self):
        return len(self.variables)

    def __contains__(self, name):
        return name.upper() in self.variables

    def get(self, name):
        """Return the stored Value, or None when ``name`` was never set."""
        var = self.variables.get(name.upper())
        return var.value if var is not None else None

    def _bind(self, name, value):
        key = name.upper()
        var = self.variables.get(key)
        new_cost = text_cost(value.value) if value.is_text else 0

        if var is None:
            self.budget.allocate(text_cost(name) + new_cost)
            self.variables[key] = Variable(name, value)
            return

        old_cost = text_cost(var.value.value) if var.value.is_text else 0
        self.budget.release(old_cost)
        try:
            self.budget.allocate(new_cost)
        except OutOfMemoryError:
            self.budget.allocate(old_cost)
            raise
        var.value = value

    def set_number(self, name, number):
        self._bind(name, Number(number))

    def set_text(self, name, text):
        self._bind(name, Text(text))

    def set(self, name, value):
        """Store an evaluated Value under its own type."""
        if value.is_text:
            self.set_text(name, value.value)
        else:
            self.set_number(name, value.value)

    def clear_all(self):
        for var in self.variables.values():
            self.budget.release(text_cost(var.name))
            if var.value.is_text:
                self.budget.release(text_cost(var.value.value))
        self.variables = {}
