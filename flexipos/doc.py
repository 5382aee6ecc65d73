from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass
class Token:
    id: int
    form: str
    upos: str = ""
    xpos: str = ""

    def tag(self, column: str = "upos") -> str:
        value = getattr(self, column, "") or ""
        return "" if value in {"_", "-"} else value


@dataclass
class Sentence:
    id: str
    tokens: List[Token] = field(default_factory=list)

    @property
    def forms(self) -> List[str]:
        return [token.form for token in self.tokens]

    def tags(self, column: str = "upos") -> List[str]:
        return [token.tag(column) for token in self.tokens]
