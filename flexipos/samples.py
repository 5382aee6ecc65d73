"""
Restartable streams of labeled training samples.

A sample stream is scanned front to back, rewound with ``reset()`` and
released with ``close()``. Every stream keeps a small event log (``scan``,
``reset``, ``close``) so callers and tests can see how often it was read.
"""

from __future__ import annotations

import codecs
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, IO, Iterable, Iterator, List, Optional, Sequence, Tuple

from .conllu import iter_conllu_sentences
from .errors import InvalidFormatError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class POSSample:
    words: Tuple[str, ...]
    tags: Tuple[str, ...]

    def __post_init__(self):
        if len(self.words) != len(self.tags):
            raise InvalidFormatError(
                f"Sample has {len(self.words)} words but {len(self.tags)} tags"
            )

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, str]]) -> "POSSample":
        pairs = list(pairs)
        return cls(tuple(word for word, _ in pairs), tuple(tag for _, tag in pairs))

    def __len__(self) -> int:
        return len(self.words)

    def __str__(self) -> str:
        return " ".join(f"{word}_{tag}" for word, tag in zip(self.words, self.tags))


class SampleStream:
    """Base class: subclasses provide ``_open_samples`` and may override ``_release``."""

    def __init__(self) -> None:
        self._iterator: Optional[Iterator[POSSample]] = None
        self._at_start = True
        self._closed = False
        self.scans = 0
        self.resets = 0
        self.events: List[str] = []

    @property
    def closed(self) -> bool:
        return self._closed

    def _open_samples(self) -> Iterator[POSSample]:
        raise NotImplementedError

    def _release(self) -> None:
        pass

    def read(self) -> Optional[POSSample]:
        """Return the next sample, or ``None`` once the stream is exhausted."""
        if self._closed:
            raise OSError("Cannot read from a closed sample stream")
        if self._iterator is None:
            self._iterator = self._open_samples()
        if self._at_start:
            self._at_start = False
            self.scans += 1
            self.events.append("scan")
        return next(self._iterator, None)

    def __iter__(self) -> Iterator[POSSample]:
        while (sample := self.read()) is not None:
            yield sample

    def reset(self) -> None:
        if self._closed:
            raise OSError("Cannot reset a closed sample stream")
        self._release()
        self._iterator = None
        self._at_start = True
        self.resets += 1
        self.events.append("reset")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._iterator = None
        self.events.append("close")
        self._release()

    def __enter__(self) -> "SampleStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ListSampleStream(SampleStream):
    """In-memory stream over an already parsed list of samples."""

    def __init__(self, samples: Sequence[POSSample]):
        super().__init__()
        self._samples = list(samples)

    def _open_samples(self) -> Iterator[POSSample]:
        return iter(self._samples)


SampleParser = Callable[[IO[str], str], Iterator[POSSample]]


def _parse_word_tag(handle: IO[str], tag_column: str) -> Iterator[POSSample]:
    for line_number, line in enumerate(handle, 1):
        tokens = line.split()
        if not tokens:
            continue
        pairs = []
        for token in tokens:
            word, sep, tag = token.rpartition("_")
            if not sep or not word or not tag:
                raise InvalidFormatError(
                    f"Invalid word_tag token '{token}' at line {line_number}"
                )
            pairs.append((word, tag))
        yield POSSample.from_pairs(pairs)


def _parse_conllu(handle: IO[str], tag_column: str) -> Iterator[POSSample]:
    for sentence in iter_conllu_sentences(handle):
        tags = sentence.tags(tag_column)
        if not all(tags):
            raise InvalidFormatError(
                f"Sentence '{sentence.id}' has tokens without a {tag_column} tag"
            )
        yield POSSample(tuple(sentence.forms), tuple(tags))


SAMPLE_FORMATS: Dict[str, SampleParser] = {
    "conllu": _parse_conllu,
    "word_tag": _parse_word_tag,
}


class FileSampleStream(SampleStream):
    """Stream that re-opens and re-parses a corpus file on every scan."""

    def __init__(
        self,
        path: Path,
        fmt: str = "conllu",
        *,
        tag_column: str = "upos",
        encoding: str = "utf-8",
    ):
        super().__init__()
        parser = SAMPLE_FORMATS.get(fmt.lower())
        if parser is None:
            raise InvalidFormatError(
                f"Unknown sample format '{fmt}'. Choose from: {', '.join(sorted(SAMPLE_FORMATS))}"
            )
        if tag_column not in {"upos", "xpos"}:
            raise InvalidFormatError(f"Unknown tag column '{tag_column}'. Choose upos or xpos.")
        try:
            codecs.lookup(encoding)
        except LookupError as exc:
            raise InvalidFormatError(f"Unknown encoding '{encoding}'") from exc
        self.path = Path(path)
        self.format = fmt.lower()
        self.tag_column = tag_column
        self.encoding = encoding
        self._parser = parser
        self._handle: Optional[IO[str]] = None

    def _open_samples(self) -> Iterator[POSSample]:
        logger.debug("Opening %s samples from %s", self.format, self.path)
        self._handle = self.path.open("r", encoding=self.encoding)
        return self._parser(self._handle, self.tag_column)

    def _release(self) -> None:
        if self._handle is not None:
            handle, self._handle = self._handle, None
            handle.close()


def open_sample_stream(
    path: Path,
    fmt: str = "conllu",
    *,
    tag_column: str = "upos",
    encoding: str = "utf-8",
) -> FileSampleStream:
    """Create a lazy stream; the file is only opened on the first read."""
    return FileSampleStream(Path(path), fmt, tag_column=tag_column, encoding=encoding)
