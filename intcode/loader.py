"""Program loader — comma-separated integer text → list of ints."""
from __future__ import annotations

import re
from pathlib import Path
from typing import List, Union

_INT_RE = re.compile(r'[+-]?\d+')


class ProgramFormatError(ValueError):
    def __init__(self, message: str, index: int, token: str):
        super().__init__(f"{message} at token {index}: {token!r}")
        self.index = index
        self.token = token


def parse_program(text: str) -> List[int]:
    """Parse ``"1,0,0,3,99"`` style text.

    Whitespace (including newlines) around tokens and a single trailing
    comma are tolerated; empty text yields an empty program.
    """
    body = text.strip()
    if not body:
        return []
    tokens = body.split(",")
    if tokens[-1].strip() == "":
        tokens.pop()
    program = []
    for index, token in enumerate(tokens):
        token = token.strip()
        if not _INT_RE.fullmatch(token):
            raise ProgramFormatError("Not an integer", index, token)
        program.append(int(token))
    return program


def load_program(path: Union[str, Path]) -> List[int]:
    return parse_program(Path(path).read_text(encoding="utf-8"))

