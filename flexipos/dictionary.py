"""
Auxiliary dictionaries derived from, or applied to, the training corpus.

``NGramDictionary`` holds frequent word unigrams and bigrams. ``TagDictionary``
maps word forms to their permissible tags; only ``MutableTagDictionary``
supports incremental population, which callers discover through
``TagDictionary.as_mutable()``.
"""

from __future__ import annotations

import json
import logging
from collections import Counter, defaultdict
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from .errors import InvalidFormatError
from .samples import SampleStream

logger = logging.getLogger(__name__)

NGRAM_MAX_LENGTH = 2


def iter_ngrams(words: Sequence[str], max_length: int = NGRAM_MAX_LENGTH) -> Iterator[Tuple[str, ...]]:
    lowered = [word.lower() for word in words]
    for length in range(1, max_length + 1):
        for start in range(len(lowered) - length + 1):
            yield tuple(lowered[start:start + length])


class NGramDictionary:
    """Read-only set of lower-cased word n-grams."""

    def __init__(self, entries: Iterable[Sequence[str]] = ()):
        self._entries: FrozenSet[Tuple[str, ...]] = frozenset(tuple(entry) for entry in entries)

    def __contains__(self, ngram: object) -> bool:
        return ngram in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Tuple[str, ...]]:
        return iter(sorted(self._entries))

    def to_list(self) -> List[List[str]]:
        return [list(entry) for entry in self]

    @classmethod
    def from_list(cls, data: Iterable[Sequence[str]]) -> "NGramDictionary":
        return cls(data)


def build_ngram_dictionary(samples: SampleStream, cutoff: int) -> NGramDictionary:
    """
    Scan every sample once and keep the n-grams seen at least ``cutoff`` times.

    The caller is responsible for resetting the stream afterwards.
    """
    counts: Counter = Counter()
    for sample in samples:
        counts.update(iter_ngrams(sample.words))
    ngram_dict = NGramDictionary(ngram for ngram, count in counts.items() if count >= cutoff)
    logger.info("Built n-gram dictionary with %d of %d n-grams (cutoff %d)", len(ngram_dict), len(counts), cutoff)
    return ngram_dict


class TagDictionary:
    """Word form to tag-set lookup."""

    def __init__(
        self,
        entries: Optional[Mapping[str, Iterable[str]]] = None,
        case_sensitive: bool = True,
    ):
        self.case_sensitive = case_sensitive
        self._entries: Dict[str, FrozenSet[str]] = {}
        for word, tags in (entries or {}).items():
            self._entries[self._key(word)] = frozenset(tags)

    def _key(self, word: str) -> str:
        return word if self.case_sensitive else word.lower()

    def tags(self, word: str) -> Optional[FrozenSet[str]]:
        return self._entries.get(self._key(word))

    def words(self) -> List[str]:
        return sorted(self._entries)

    def as_mutable(self) -> Optional["MutableTagDictionary"]:
        """Return a view supporting incremental population, or ``None``."""
        return None

    def __contains__(self, word: object) -> bool:
        return isinstance(word, str) and self._key(word) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TagDictionary):
            return NotImplemented
        return self.case_sensitive == other.case_sensitive and self._entries == other._entries

    def to_dict(self) -> Dict[str, object]:
        return {
            "case_sensitive": self.case_sensitive,
            "entries": {word: sorted(tags) for word, tags in sorted(self._entries.items())},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "TagDictionary":
        if "entries" in data and isinstance(data["entries"], Mapping):
            entries = data["entries"]
            case_sensitive = bool(data.get("case_sensitive", True))
        else:
            entries = data
            case_sensitive = True
        for word, tags in entries.items():
            if isinstance(tags, str) or not isinstance(tags, list):
                raise InvalidFormatError(f"Tags for '{word}' must be a list of strings")
        return cls(entries, case_sensitive=case_sensitive)

    @classmethod
    def load(cls, path: Path) -> "TagDictionary":
        path = Path(path)
        with path.open("r", encoding="utf-8") as handle:
            try:
                data = json.load(handle)
            except json.JSONDecodeError as exc:
                raise InvalidFormatError(f"Tag dictionary '{path}' is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise InvalidFormatError(f"Tag dictionary '{path}' must contain a JSON object")
        dictionary = cls.from_dict(data)
        logger.info("Loaded tag dictionary with %d words from %s", len(dictionary), path)
        return dictionary


class MutableTagDictionary(TagDictionary):
    def put(self, word: str, tags: Iterable[str]) -> Optional[FrozenSet[str]]:
        key = self._key(word)
        previous = self._entries.get(key)
        self._entries[key] = frozenset(tags)
        return previous

    def as_mutable(self) -> "MutableTagDictionary":
        return self


def populate_pos_dictionary(samples: SampleStream, dictionary: MutableTagDictionary, cutoff: int) -> None:
    """
    Scan every sample once and add each word/tag pair seen at least ``cutoff`` times.

    Existing tags for a word are kept. The caller resets the stream afterwards.
    """
    counts: Dict[str, Counter] = defaultdict(Counter)
    for sample in samples:
        for word, tag in zip(sample.words, sample.tags):
            key = word if dictionary.case_sensitive else word.lower()
            counts[key][tag] += 1

    added = 0
    for word, tag_counts in counts.items():
        frequent = {tag for tag, count in tag_counts.items() if count >= cutoff}
        if not frequent:
            continue
        existing = dictionary.tags(word) or frozenset()
        dictionary.put(word, existing | frequent)
        added += 1
    logger.info("Populated tag dictionary with %d words (cutoff %d)", added, cutoff)
