"""
Positional placeholder handling for parameterized statements.

Statements are written with `?` markers. Before execution the markers are
rewritten to the driver's paramstyle (`%s` for psycopg, `?` for sqlite3),
leaving string literals and comments untouched.
"""
import re
from dataclasses import dataclass
from enum import Enum, auto


class TokenType(Enum):
    """Token types identified during SQL parsing."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    COMMENT = auto()
    POSITIONAL_PH = auto()      # ?


@dataclass(slots=True)
class Token:
    """Token from SQL parsing."""
    type: TokenType
    text: str
    start: int
    end: int


_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*'|"(?:[^"]|"")*")
    |(?P<comment>--[^\n]*|/\*.*?\*/)
    |(?P<qmark>\?)
""", re.VERBOSE | re.DOTALL)

# JDBC call escape: {call proc(?, ?)}
_CALL_ESCAPE = re.compile(r'^\s*\{\s*call\s+(?P<body>.*?)\s*\}\s*$', re.IGNORECASE | re.DOTALL)


def tokenize_sql(sql: str) -> list[Token]:
    """Parse SQL into tokens in a single pass.

    Parameters
        sql: SQL query string

    Returns
        List of tokens preserving all SQL text
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()

        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start], last_end, start))

        if match.group('string'):
            ttype = TokenType.STRING_LITERAL
        elif match.group('comment'):
            ttype = TokenType.COMMENT
        else:
            ttype = TokenType.POSITIONAL_PH

        tokens.append(Token(ttype, match.group(0), start, end))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:], last_end, len(sql)))

    return tokens


def count_placeholders(sql: str | None) -> int:
    """Count `?` placeholders outside string literals and comments.
    """
    if not sql:
        return 0
    return sum(1 for t in tokenize_sql(sql) if t.type == TokenType.POSITIONAL_PH)


def standardize_placeholders(sql: str, dialect: str = 'sqlite') -> str:
    """Convert positional placeholders to the dialect's paramstyle.

    For postgresql, `?` becomes `%s` and every other percent sign is doubled
    so psycopg does not read it as a format marker. Other dialects take `?`
    as is.

    Parameters
        sql: SQL query string
        dialect: Database dialect

    Returns
        SQL with standardized placeholders
    """
    if not sql or dialect != 'postgresql':
        return sql

    result = []
    for token in tokenize_sql(sql):
        if token.type == TokenType.POSITIONAL_PH:
            result.append('%s')
        else:
            result.append(token.text.replace('%', '%%'))
    return ''.join(result)


def unescape_call(sql: str) -> str:
    """Rewrite the `{call proc(?)}` escape as `CALL proc(?)`.

    Other statements are returned unchanged.
    """
    match = _CALL_ESCAPE.match(sql)
    if not match:
        return sql
    return f"CALL {match.group('body')}"
