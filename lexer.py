import re

# Keywords accepted at the direct-mode prompt only
IMMEDIATE_KEYWORDS = ('LIST', 'RUN', 'NEW', 'LOAD', 'SAVE', 'EXIT')

STATEMENT_KEYWORDS = (
    'PRINT', 'INPUT', 'LET', 'GOTO', 'GOSUB', 'RETURN', 'IF', 'THEN', 'ELSE',
    'FOR', 'TO', 'STEP', 'NEXT', 'DO', 'LOOP', 'WHILE', 'WEND', 'REPEAT',
    'UNTIL', 'REM', 'END', 'STOP', 'DIM', 'TRAP', 'RESUME', 'DATA', 'READ',
    'RESTORE', 'POKE', 'PLOT', 'DRAW',
)

WORD_OPERATORS = ('AND', 'OR', 'NOT')

FUNCTIONS = (
    'ABS', 'INT', 'RND', 'SIN', 'COS', 'TAN', 'SQR', 'LEN', 'LEFT$', 'RIGHT$',
    'MID$', 'STR$', 'VAL', 'CHR$', 'ASC', 'PEEK',
)

KEYWORDS = frozenset(IMMEDIATE_KEYWORDS + STATEMENT_KEYWORDS + WORD_OPERATORS + FUNCTIONS)

OPERATORS = {
    '+': 'PLUS',
    '-': 'MINUS',
    '*': 'MULTIPLY',
    '/': 'DIVIDE',
    '^': 'POWER',
    '=': 'EQUAL',
    '<>': 'NOT_EQUAL',
    '<': 'LESS',
    '>': 'GREATER',
    '<=': 'LESS_EQUAL',
    '>=': 'GREATER_EQUAL',
}

DELIMITERS = {
    '(': 'LPAREN',
    ')': 'RPAREN',
    ',': 'COMMA',
    ';': 'SEMICOLON',
    ':': 'COLON',
    '?': 'QUESTION',  # shorthand for PRINT
}

RELATIONAL = frozenset(('EQUAL', 'NOT_EQUAL', 'LESS', 'GREATER', 'LESS_EQUAL', 'GREATER_EQUAL'))

# Kinds that end the statements of one line
LINE_END = frozenset(('NEWLINE', 'EOF'))


class Token:
    def __init__(self, type, text=None, number=0.0, line=1, column=1):
        self.type = type
        self.text = text
        self.number = number
        self.line = line
        self.column = column

    def __repr__(self):
        if self.type == 'NUMBER':
            return f"Token({self.type}, {self.number})"
        return f"Token({self.type}, {self.text!r})"


class Lexer:
    """On-demand tokenizer over one piece of source text.

    ``next_token`` consumes a token, ``peek_token`` returns the next one and
    restores position, line and column exactly.
    """

    # Tried in order at the current position; the first match wins.
    token_specification = [
        ('SKIP',       r'[ \t]+'),
        ('NEWLINE',    r'\r\n|\r|\n'),
        ('NUMBER',     r'[0-9]+(?:\.[0-9]*)?(?:[Ee][+-]?[0-9]*)?'),
        ('STRING',     r'"[^"\n]*"?'),  # may be unterminated
        ('IDENTIFIER', r'[A-Za-z][A-Za-z0-9_$]*'),
        ('OPERATOR',   r'<=|<>|>=|[-+*/^=<>]'),
        ('DELIMITER',  r'[(),;:?]'),
        ('MISMATCH',   r'.'),
    ]

    token_regex = re.compile(
        '|'.join('(?P<%s>%s)' % pair for pair in token_specification), re.DOTALL)

    def __init__(self, text):
        self.text = text
        self.position = 0
        self.line = 1
        self.column = 1

    def _advance(self, lexeme):
        self.position += len(lexeme)
        newlines = lexeme.count('\n')
        if newlines:
            self.line += newlines
            self.column = len(lexeme) - lexeme.rfind('\n')
        else:
            self.column += len(lexeme)

    def next_token(self):
        mo = self.token_regex.match(self.text, self.position)
        if mo and mo.lastgroup == 'SKIP':
            self._advance(mo.group())
            mo = self.token_regex.match(self.text, self.position)

        line, column = self.line, self.column
        if mo is None:
            return Token('EOF', line=line, column=column)

        kind = mo.lastgroup
        lexeme = mo.group()
        self._advance(lexeme)

        if kind == 'NUMBER':
            return Token('NUMBER', lexeme, _parse_number(lexeme), line, column)
        elif kind == 'STRING':
            body = lexeme[1:-1] if len(lexeme) > 1 and lexeme.endswith('"') else lexeme[1:]
            return Token('STRING', body, 0.0, line, column)
        elif kind == 'IDENTIFIER':
            upper = lexeme.upper()
            if upper in KEYWORDS:
                return Token(upper, lexeme, 0.0, line, column)
            return Token('IDENTIFIER', lexeme, 0.0, line, column)
        elif kind == 'OPERATOR':
            return Token(OPERATORS[lexeme], lexeme, 0.0, line, column)
        elif kind == 'DELIMITER':
            return Token(DELIMITERS[lexeme], lexeme, 0.0, line, column)
        elif kind == 'NEWLINE':
            return Token('NEWLINE', None, 0.0, line, column)
        return Token('ERROR', lexeme, 0.0, line, column)

    def peek_token(self):
        saved = (self.position, self.line, self.column)
        token = self.next_token()
        self.position, self.line, self.column = saved
        return token

    def tokenize(self):
        """Yield every remaining token up to, but not including, EOF."""
        while True:
            token = self.next_token()
            if token.type == 'EOF':
                return
            yield token


def _parse_number(lexeme):
    # "1E" and "1E+" read as the mantissa alone, like C's atof
    try:
        return float(lexeme)
    except ValueError:
        return float(re.match(r'[0-9]+(?:\.[0-9]*)?', lexeme).group())
