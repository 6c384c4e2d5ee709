"""
secretpatch/update_string.py — Parser for compact update strings.

Grammar:
    entry[,entry...]      entry := key=value
    key                   dot-path, e.g. "database.host"
    value                 raw text, or "double quoted" to carry commas

Examples:
    apiKey=abc,environment=dev
    message="hello,world",env=prod
    connection=Server=a;Database=b     (everything after the first '=' is the value)
"""
import logging
from dataclasses import dataclass

from secretpatch.errors import ParseError

log = logging.getLogger(__name__)

QUOTE = '"'
ESCAPE = "\\"
SEPARATOR = ","
ASSIGN = "="
PATH_SEPARATOR = "."


@dataclass(frozen=True)
class UpdateToken:
    """One key/value assignment from an update string."""

    key: str
    value: str

    @property
    def is_nested(self) -> bool:
        return PATH_SEPARATOR in self.key


def validate_key(key: str) -> None:
    """Raise ParseError unless key is a well-formed dot-path."""
    if not key:
        raise ParseError("Empty key in update string")
    if any(ch.isspace() for ch in key):
        raise ParseError(f"Key '{key}' contains whitespace")
    if key.startswith(PATH_SEPARATOR) or key.endswith(PATH_SEPARATOR):
        raise ParseError(f"Key '{key}' cannot start or end with '{PATH_SEPARATOR}'")
    if PATH_SEPARATOR * 2 in key:
        raise ParseError(f"Key '{key}' contains an empty path segment")


def _split_entries(update_string: str) -> list[str]:
    entries: list[str] = []
    current: list[str] = []
    in_quotes = False
    escaped = False

    for ch in update_string:
        if escaped:
            current.append(ch)
            escaped = False
            continue
        # Outside quotes a backslash is literal text.
        if ch == ESCAPE and in_quotes:
            current.append(ch)
            escaped = True
            continue
        if ch == QUOTE:
            in_quotes = not in_quotes
        elif ch == SEPARATOR and not in_quotes:
            entries.append("".join(current))
            current = []
            continue
        current.append(ch)

    if in_quotes:
        raise ParseError("Unterminated quote in update string")
    entries.append("".join(current))
    return entries


def _unquote(value: str) -> str:
    if len(value) < 2 or not (value.startswith(QUOTE) and value.endswith(QUOTE)):
        return value
    inner = value[1:-1]
    out: list[str] = []
    i = 0
    while i < len(inner):
        ch = inner[i]
        if ch == ESCAPE and i + 1 < len(inner) and inner[i + 1] in (QUOTE, ESCAPE):
            out.append(inner[i + 1])
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def parse(update_string: str) -> list[UpdateToken]:
    """
    Tokenize an update string into ordered, unique UpdateTokens.

    Commas split entries only outside double quotes; inside quotes a
    backslash-escaped quote does not close the quoted run. Outside quotes a
    backslash is ordinary text. Blank entries (a trailing comma, say) are
    skipped.

    Raises:
        ParseError: unterminated quote, missing '=', bad or repeated key,
            or nothing to apply.
    """
    if update_string is None or not update_string.strip():
        raise ParseError("Update string is empty")

    tokens: list[UpdateToken] = []
    seen: set[str] = set()

    for raw_entry in _split_entries(update_string):
        entry = raw_entry.strip()
        if not entry:
            continue
        idx = entry.find(ASSIGN)
        if idx <= 0:
            raise ParseError(f"Entry '{entry}' is not in key=value form")

        key = entry[:idx].strip()
        value = _unquote(entry[idx + 1:].strip())
        validate_key(key)
        if key in seen:
            raise ParseError(f"Duplicate key '{key}' in update string")
        seen.add(key)
        tokens.append(UpdateToken(key=key, value=value))

    if not tokens:
        raise ParseError("Update string contains no entries")

    log.debug(f"Parsed {len(tokens)} update token(s): {[t.key for t in tokens]}")
    return tokens


def parse_key_list(keys: str) -> list[str]:
    """Split a comma-separated key list (used for removals) and validate each key."""
    result: list[str] = []
    for raw in keys.split(SEPARATOR):
        key = raw.strip()
        if not key:
            continue
        validate_key(key)
        if key in result:
            raise ParseError(f"Duplicate key '{key}' in key list")
        result.append(key)
    return result


def _needs_quoting(value: str) -> bool:
    if value != value.strip():
        return True
    return any(ch in value for ch in (SEPARATOR, QUOTE, ESCAPE))


def format_update_string(tokens: list[UpdateToken]) -> str:
    """Render tokens back into an update string that parses to the same tokens."""
    parts = []
    for token in tokens:
        value = token.value
        if _needs_quoting(value):
            escaped = value.replace(ESCAPE, ESCAPE * 2).replace(QUOTE, ESCAPE + QUOTE)
            value = f"{QUOTE}{escaped}{QUOTE}"
        parts.append(f"{token.key}{ASSIGN}{value}")
    return SEPARATOR.join(parts)
