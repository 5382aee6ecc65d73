from __future__ import annotations

from typing import Iterable, Iterator, Optional

from .doc import Sentence, Token
from .errors import InvalidFormatError


def _parse_token_line(line: str, line_number: int) -> Optional[Token]:
    cols = line.split("\t")
    if len(cols) < 10:
        raise InvalidFormatError(
            f"CoNLL-U line {line_number} has {len(cols)} columns, expected 10"
        )
    tok_id = cols[0]
    # Multiword ranges (1-2) and empty nodes (1.1) carry no trainable tag
    if "-" in tok_id or "." in tok_id:
        return None
    try:
        token_id = int(tok_id)
    except ValueError as exc:
        raise InvalidFormatError(
            f"CoNLL-U line {line_number} has a non-numeric token id '{tok_id}'"
        ) from exc
    return Token(id=token_id, form=cols[1], upos=cols[3], xpos=cols[4])


def iter_conllu_sentences(lines: Iterable[str]) -> Iterator[Sentence]:
    """
    Lazily parse CoNLL-U lines into sentences.

    A ``# sent_id = ...`` comment names the sentence; other comments are
    skipped. Sentences without a sent_id are numbered ``s1``, ``s2``, ...
    """
    current: Optional[Sentence] = None
    sentence_counter = 0

    for line_number, raw_line in enumerate(lines, 1):
        line = raw_line.rstrip("\r\n")
        if not line.strip():
            if current is not None and current.tokens:
                yield current
            current = None
            continue

        if current is None:
            sentence_counter += 1
            current = Sentence(id=f"s{sentence_counter}")

        if line.startswith("#"):
            key, sep, value = line[1:].partition("=")
            if sep and key.strip() == "sent_id":
                current.id = value.strip()
            continue

        token = _parse_token_line(line, line_number)
        if token is not None:
            current.tokens.append(token)

    if current is not None and current.tokens:
        yield current
