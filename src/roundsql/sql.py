"""
SQL text helpers for SQL Server.

- `quote_identifier()` - Bracket-quote table/column names
- `tokenize_sql()` - Split SQL into text, literals and `@name` placeholders
- `find_placeholders()` - Named placeholders in order of appearance
- `replace_placeholders()` - Rewrite declared `@name` placeholders to `?`
- `split_qualified()` - Split `schema.table` into its parts
- `parameter_names()` - Unique placeholder names for columns
"""
import re
from dataclasses import dataclass
from enum import Enum, auto

from roundsql.exceptions import ValidationError


class TokenType(Enum):
    """Token types identified during SQL parsing."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    QUOTED_IDENTIFIER = auto()
    COMMENT = auto()
    SYSTEM_VARIABLE = auto()    # @@IDENTITY, @@ROWCOUNT
    NAMED_PH = auto()           # @name


@dataclass(slots=True)
class Token:
    """Token from SQL parsing."""
    type: TokenType
    text: str
    start: int
    end: int

    @property
    def name(self) -> str:
        return self.text[1:]


_TOKENIZE = re.compile(r"""
    (?P<string>N?'(?:[^']|'')*')
    |(?P<identifier>\[(?:[^\]]|\]\])*\]|"(?:[^"]|"")*")
    |(?P<comment>--[^\n]*|/\*.*?\*/)
    |(?P<system>@@\w+)
    |(?P<named>@\w+)
""", re.VERBOSE | re.DOTALL)

_TOKEN_TYPES = {
    'string': TokenType.STRING_LITERAL,
    'identifier': TokenType.QUOTED_IDENTIFIER,
    'comment': TokenType.COMMENT,
    'system': TokenType.SYSTEM_VARIABLE,
    'named': TokenType.NAMED_PH,
    }


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
        tokens.append(Token(_TOKEN_TYPES[match.lastgroup], match.group(0), start, end))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:], last_end, len(sql)))

    return tokens


def find_placeholders(sql: str) -> list[str]:
    """Return `@name` placeholder names in order of appearance (with repeats).
    """
    return [t.name for t in tokenize_sql(sql) if t.type == TokenType.NAMED_PH]


def replace_placeholders(sql: str, names: set[str] | frozenset[str]) -> tuple[str, list[str]]:
    """Rewrite `@name` placeholders for declared names into ODBC `?` markers.

    Placeholders that are not in `names` (local variables such as
    `DECLARE @total int`) are left untouched. Names compare case-insensitively,
    as SQL Server does.

    Parameters
        sql: SQL with `@name` placeholders
        names: Declared parameter names

    Returns
        Tuple of (rewritten SQL, parameter name for each `?` in order)
    """
    lookup = {n.lower(): n for n in names}
    result = []
    order = []
    for token in tokenize_sql(sql):
        if token.type == TokenType.NAMED_PH and token.name.lower() in lookup:
            result.append('?')
            order.append(lookup[token.name.lower()])
        else:
            result.append(token.text)
    return ''.join(result), order


_NAME_PART = re.compile(r'\[(?:[^\]]|\]\])*\]|[^.]+')


def quote_identifier(identifier: str) -> str:
    """Safely quote a SQL Server identifier with square brackets.

    Parameters
        identifier: Table or column name

    Returns
        Quoted identifier
    """
    return f"[{identifier.replace(']', ']]')}]"


def quote_qualified(name: str) -> str:
    """Quote a possibly schema-qualified name, e.g. `dbo.Person` -> `[dbo].[Person]`.

    Parts already in brackets are kept as they are.
    """
    parts = _NAME_PART.findall(name)
    return '.'.join(p if p.startswith('[') else quote_identifier(p) for p in parts)


def split_qualified(name: str) -> tuple[str | None, str]:
    """Split `schema.table` (either part optionally bracketed) into its parts.

    Returns
        (schema or None, table) with brackets removed

    Raises
        ValidationError: If the name has more than two parts
    """
    parts = [p[1:-1].replace(']]', ']') if p.startswith('[') else p
             for p in _NAME_PART.findall(name)]
    if len(parts) == 1:
        return None, parts[0]
    if len(parts) == 2:
        return parts[0], parts[1]
    raise ValidationError(f'Expected table or schema.table, got {name!r}')


def parameter_name(column: str) -> str:
    """Placeholder name bound for a column: the column name with every
    character that is not valid in a T-SQL variable name replaced by `_`.
    """
    return re.sub(r'\W', '_', column)


def parameter_names(columns) -> dict[str, str]:
    """Placeholder name for each column, unique ignoring case.

    A name already taken by an earlier column gets a `_2`, `_3`... suffix,
    so `First Name` and `First_Name` bind `@First_Name` and `@First_Name_2`.
    """
    names = {}
    taken = set()
    for column in columns:
        base = name = parameter_name(column)
        n = 1
        while name.lower() in taken:
            n += 1
            name = f'{base}_{n}'
        taken.add(name.lower())
        names[column] = name
    return names
