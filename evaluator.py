"""Expression evaluation over a live token stream.

The grammar is deliberately flat:

    expression := factor { ('+' | '=' | '<>' | '<' | '>' | '<=' | '>=') factor }
    factor     := NUMBER | STRING | IDENTIFIER | '(' expression ')'
                | CHR$ '(' expression ')' | PEEK '(' expression ')'

Operators are applied strictly left to right. ``-``, ``*``, ``/`` and ``^``
are tokenized but not consumed here, so ``2*3`` evaluates to 2 and leaves
``*3`` in the stream for the statement to skip.
"""

import logging
import math

from lexer import RELATIONAL
from values import Number, Text, default_for, truth

log = logging.getLogger(__name__)


class Evaluator:
    def __init__(self, variables, memory, budget):
        self.variables = variables
        self.memory = memory
        self.budget = budget

    def expression(self, lexer):
        left = self.factor(lexer)
        while True:
            op = lexer.peek_token()
            if op.type == 'PLUS':
                lexer.next_token()
                left = self._add(left, self.factor(lexer))
            elif op.type in RELATIONAL:
                lexer.next_token()
                left = self._compare(op.type, left, self.factor(lexer))
            else:
                return left

    def factor(self, lexer):
        token = lexer.next_token()

        if token.type == 'NUMBER':
            return Number(token.number)
        elif token.type == 'STRING':
            return Text(token.text)
        elif token.type == 'IDENTIFIER':
            value = self.variables.get(token.text)
            return value if value is not None else default_for(token.text)
        elif token.type == 'LPAREN':
            value = self.expression(lexer)
            self._skip(lexer, 'RPAREN')
            return value
        elif token.type in ('CHR$', 'PEEK'):
            arg = self._call_argument(lexer)
            if token.type == 'CHR$':
                return Text(_chr(arg.as_number()))
            return Number(self.memory.peek(arg.as_number()))

        # anything else reads as zero
        log.debug("no factor at %s", token)
        return Number(0)

    def _call_argument(self, lexer):
        self._skip(lexer, 'LPAREN')
        arg = self.expression(lexer)
        self._skip(lexer, 'RPAREN')
        return arg

    def _skip(self, lexer, kind):
        if lexer.peek_token().type == kind:
            lexer.next_token()

    def _add(self, left, right):
        if left.is_text and right.is_text:
            self.budget.check(len(left.value) + len(right.value) + 1)
            return Text(left.value + right.value)
        if not left.is_text and not right.is_text:
            return Number(left.value + right.value)
        # mixed operands: the left side wins
        return left

    def _compare(self, op, left, right):
        if left.is_text != right.is_text:
            return truth(False)

        a, b = left.value, right.value
        if op == 'EQUAL':
            result = a == b
        elif op == 'NOT_EQUAL':
            result = a != b
        elif op == 'LESS':
            result = a < b
        elif op == 'GREATER':
            result = a > b
        elif op == 'LESS_EQUAL':
            result = a <= b
        else:
            result = a >= b
        return truth(result)


def _chr(code):
    if not math.isfinite(code):
        return ''
    code = int(code) % 256
    # NUL cannot be held in a BASIC string
    return chr(code) if code else ''
