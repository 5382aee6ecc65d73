"""
Tagger factories bundle the auxiliary dictionaries a tagger is trained with.

Factories are registered by name; ``create_factory`` builds a fresh instance
for a training run.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Type

from .dictionary import MutableTagDictionary, NGramDictionary, TagDictionary
from .errors import InvalidFormatError

DEFAULT_FACTORY = "default"


class TaggerFactory:
    """Default factory: dictionaries it creates support incremental population."""

    name = DEFAULT_FACTORY
    dictionary_class: Type[TagDictionary] = MutableTagDictionary

    def __init__(
        self,
        ngram_dictionary: Optional[NGramDictionary] = None,
        tag_dictionary: Optional[TagDictionary] = None,
    ):
        self.ngram_dictionary = ngram_dictionary
        self._tag_dictionary = tag_dictionary

    @property
    def tag_dictionary(self) -> Optional[TagDictionary]:
        return self._tag_dictionary

    @tag_dictionary.setter
    def tag_dictionary(self, dictionary: Optional[TagDictionary]) -> None:
        self._tag_dictionary = dictionary

    def create_tag_dictionary(self, path: Path) -> TagDictionary:
        return self.dictionary_class.load(path)

    def create_empty_tag_dictionary(self) -> TagDictionary:
        return self.dictionary_class()

    def describe(self) -> Dict[str, object]:
        return {
            "factory": self.name,
            "ngram_entries": len(self.ngram_dictionary) if self.ngram_dictionary is not None else None,
            "tag_dictionary_entries": len(self._tag_dictionary) if self._tag_dictionary is not None else None,
        }


class FrozenTaggerFactory(TaggerFactory):
    """Factory whose tag dictionaries are read-only."""

    name = "frozen"
    dictionary_class = TagDictionary


_FACTORIES: Dict[str, Type[TaggerFactory]] = {}


def register_factory(factory_class: Type[TaggerFactory]) -> Type[TaggerFactory]:
    _FACTORIES[factory_class.name.lower()] = factory_class
    return factory_class


def available_factories() -> List[str]:
    return sorted(_FACTORIES)


def get_factory_class(selector: Optional[str]) -> Type[TaggerFactory]:
    key = (selector or DEFAULT_FACTORY).lower()
    factory_class = _FACTORIES.get(key)
    if factory_class is None:
        raise InvalidFormatError(
            f"Unknown tagger factory '{selector}'. Available: {', '.join(available_factories())}"
        )
    return factory_class


def create_factory(
    selector: Optional[str],
    ngram_dictionary: Optional[NGramDictionary] = None,
    tag_dictionary: Optional[TagDictionary] = None,
) -> TaggerFactory:
    return get_factory_class(selector)(ngram_dictionary, tag_dictionary)


register_factory(TaggerFactory)
register_factory(FrozenTaggerFactory)
