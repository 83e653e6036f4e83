"""Source-level clean-up of command code before evaluation."""

import re
from typing import List

SMART_QUOTES = {
    "‘": "'",
    "’": "'",
    "‚": "'",
    "“": '"',
    "”": '"',
    "„": '"',
}
_SMART_QUOTE_PATTERN = re.compile("[" + "".join(SMART_QUOTES) + "]")

_OPENERS = {"(": ")", "[": "]", "{": "}"}


def fix_smart_quotes(code: str) -> str:
    """Replace typographic quotes inserted by word processors with plain ones."""
    return _SMART_QUOTE_PATTERN.sub(lambda m: SMART_QUOTES[m.group(0)], code)


def strip_dollar_prefixes(code: str) -> str:
    """Drop the ``$`` in ``$name`` outside string literals.

    Templates written for other engines refer to loop variables as ``$item``
    and to the loop index as ``$idx``; here those are plain names.
    """
    if "$" not in code:
        return code
    out: List[str] = []
    quote = ""
    i = 0
    while i < len(code):
        char = code[i]
        if quote:
            out.append(char)
            if char == "\\" and i + 1 < len(code):
                out.append(code[i + 1])
                i += 2
                continue
            if char == quote:
                quote = ""
        elif char in "'\"":
            quote = char
            out.append(char)
        elif char == "$" and i + 1 < len(code) and (code[i + 1].isalpha() or code[i + 1] == "_"):
            pass
        else:
            out.append(char)
        i += 1
    return "".join(out)


def split_statements(code: str) -> List[str]:
    """Split code on ``;`` and newlines that sit outside strings and brackets."""
    statements: List[str] = []
    current: List[str] = []
    depth: List[str] = []
    quote = ""
    i = 0
    while i < len(code):
        char = code[i]
        if quote:
            current.append(char)
            if char == "\\" and i + 1 < len(code):
                current.append(code[i + 1])
                i += 2
                continue
            if char == quote:
                quote = ""
        elif char in "'\"":
            quote = char
            current.append(char)
        elif char in _OPENERS:
            depth.append(_OPENERS[char])
            current.append(char)
        elif depth and char == depth[-1]:
            depth.pop()
            current.append(char)
        elif char in ";\n" and not depth:
            statements.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1
    statements.append("".join(current))
    return [statement.strip() for statement in statements if statement.strip()]
