"""Values produced by expression evaluation.

A value is either a ``Number`` or a ``Text``. Both are immutable, so a value
handed to a caller can be stored, printed or combined without anybody else
seeing it change.
"""

TRUE = -1.0
FALSE = 0.0


class Value:
    __slots__ = ('value',)
    is_text = False

    def __init__(self, value):
        object.__setattr__(self, 'value', value)

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def as_number(self):
        return 0.0

    def __eq__(self, other):
        return type(self) is type(other) and self.value == other.value

    def __hash__(self):
        return hash((type(self).__name__, self.value))

    def __repr__(self):
        return f"{type(self).__name__}({self.value!r})"


class Number(Value):
    __slots__ = ()

    def __init__(self, value=0.0):
        super().__init__(float(value))

    def as_number(self):
        return self.value

    def __str__(self):
        # same rendering as C's "%g"
        return '%g' % self.value


class Text(Value):
    __slots__ = ()
    is_text = True

    def __init__(self, value=''):
        super().__init__(str(value))

    def __str__(self):
        return self.value


def default_for(name):
    """Value of a variable that was never assigned."""
    if name.endswith('$'):
        return Text('')
    return Number(0)


def truth(flag):
    return Number(TRUE if flag else FALSE)
