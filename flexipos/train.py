"""
Part-of-speech tagger training pipeline.

``POSTaggerTrainerTool.run`` resolves the training parameters, validates the
output path, optionally builds the n-gram and tag dictionaries from the
corpus, trains the model and writes it. The sample stream is scanned once
per active stage, rewound between stages and closed exactly once when the
run ends, whatever the outcome.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

from tabulate import tabulate

from .cmdline import check_output_file, progress, write_model
from .dictionary import MutableTagDictionary, NGramDictionary, build_ngram_dictionary, populate_pos_dictionary
from .errors import ConfigurationError, InvalidFormatError, ToolIOError
from .factory import TaggerFactory, create_factory
from .params import TrainingParameters, resolve_training_parameters
from .samples import SampleStream
from .trainer import POSModel, train

logger = logging.getLogger(__name__)

MODEL_LABEL = "pos tagger"


class PipelineState(Enum):
    START = "start"
    CONFIG_RESOLVED = "config_resolved"
    OUTPUT_PATH_VALIDATED = "output_path_validated"
    NGRAM_BUILT = "ngram_built"
    TAGDICT_BUILT = "tagdict_built"
    TRAINED = "trained"
    PERSISTED = "persisted"
    DONE = "done"
    FAILED = "failed"


@dataclass
class TrainerToolParams:
    model: Path
    lang: str
    params: Optional[Path] = None
    iterations: Optional[int] = None
    cutoff: Optional[int] = None
    algorithm: Optional[str] = None
    ngram: Optional[int] = None
    tag_dict: Optional[Path] = None
    tag_dict_cutoff: Optional[int] = None
    factory: Optional[str] = None


def _or_dash(value: object) -> object:
    return "-" if value is None else value


class POSTaggerTrainerTool:
    """Trains a model for the part-of-speech tagger."""

    def __init__(self, params: TrainerToolParams, samples: SampleStream, *, verbose: bool = False):
        self.params = params
        self.samples = samples
        self.verbose = verbose
        self.state = PipelineState.START
        self.history: List[PipelineState] = [PipelineState.START]
        self.training_parameters: Optional[TrainingParameters] = None
        self.tagger_factory: Optional[TaggerFactory] = None
        self.model: Optional[POSModel] = None

    def _advance(self, state: PipelineState) -> None:
        logger.debug("Pipeline state %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def run(self) -> Path:
        """Run the whole pipeline and return the path of the written model."""
        try:
            try:
                self.training_parameters = resolve_training_parameters(
                    self.params.params,
                    self.params.iterations,
                    self.params.cutoff,
                    self.params.algorithm,
                )
                self._advance(PipelineState.CONFIG_RESOLVED)

                check_output_file(MODEL_LABEL, self.params.model)
                self._advance(PipelineState.OUTPUT_PATH_VALIDATED)

                # Dictionary capability is settled before the corpus is scanned
                self.tagger_factory = self._create_factory()
                mutable = self._prepare_tag_dictionary()
                self.tagger_factory.ngram_dictionary = self._build_ngram_dictionary()
                self._populate_tag_dictionary(mutable)
                self.model = self._train()
            finally:
                self._close_samples()

            model_path = write_model(MODEL_LABEL, self.params.model, self.model)
            self._advance(PipelineState.PERSISTED)
        except BaseException:
            self._advance(PipelineState.FAILED)
            raise

        if self.verbose:
            self._print_summary(model_path)
        self._advance(PipelineState.DONE)
        return model_path

    def _build_ngram_dictionary(self) -> Optional[NGramDictionary]:
        cutoff = self.params.ngram
        if cutoff is None:
            return None
        try:
            with progress("Building ngram dictionary"):
                ngram_dict = build_ngram_dictionary(self.samples, cutoff)
                self.samples.reset()
        except (OSError, ValueError) as exc:
            raise ToolIOError(f"IO error while building NGram Dictionary: {exc}") from exc
        self._advance(PipelineState.NGRAM_BUILT)
        return ngram_dict

    def _create_factory(self) -> TaggerFactory:
        try:
            return create_factory(self.params.factory, None, None)
        except InvalidFormatError as exc:
            raise ToolIOError(str(exc)) from exc

    def _prepare_tag_dictionary(self) -> Optional[MutableTagDictionary]:
        """Load the tag dictionary and return its mutable view when it is to be populated."""
        if self.params.tag_dict is None and self.params.tag_dict_cutoff is None:
            return None
        with progress("Preparing tag dictionary"):
            factory = self.tagger_factory
            if self.params.tag_dict is not None:
                try:
                    factory.tag_dictionary = factory.create_tag_dictionary(self.params.tag_dict)
                except (OSError, ValueError) as exc:
                    raise ToolIOError(f"IO error while loading POS Dictionary: {exc}") from exc

            if self.params.tag_dict_cutoff is None:
                return None

            dictionary = factory.tag_dictionary
            if dictionary is None:
                dictionary = factory.create_empty_tag_dictionary()
                factory.tag_dictionary = dictionary
            mutable = dictionary.as_mutable()
            if mutable is None:
                raise ConfigurationError(
                    "Can't extend a POSDictionary that does not support incremental population."
                )
            return mutable

    def _populate_tag_dictionary(self, mutable: Optional[MutableTagDictionary]) -> None:
        if mutable is None:
            if self.params.tag_dict is not None:
                self._advance(PipelineState.TAGDICT_BUILT)
            return

        try:
            with progress("Populating tag dictionary"):
                populate_pos_dictionary(self.samples, mutable, self.params.tag_dict_cutoff)
                self.samples.reset()
        except (OSError, ValueError) as exc:
            raise ToolIOError(f"IO error while creating/extending POS Dictionary: {exc}") from exc
        self._advance(PipelineState.TAGDICT_BUILT)

    def _train(self) -> POSModel:
        algorithm = self.training_parameters.algorithm.value
        try:
            with progress(f"Training {algorithm} model"):
                model = train(self.params.lang, self.samples, self.training_parameters, self.tagger_factory)
        except (OSError, ValueError) as exc:
            raise ToolIOError(f"IO error while reading training data or indexing data: {exc}") from exc
        self._advance(PipelineState.TRAINED)
        return model

    def _close_samples(self) -> None:
        try:
            self.samples.close()
        except Exception as exc:
            logger.warning("Failed to close the sample stream: %s", exc)

    def _print_summary(self, model_path: Path) -> None:
        params = self.training_parameters
        metadata = self.model.metadata
        rows = [
            ("Language", self.model.language),
            ("Algorithm", params.algorithm.value),
            ("Iterations", params.iterations),
            ("Cutoff", params.cutoff),
            ("Sentences", metadata.get("sentences")),
            ("Tokens", metadata.get("tokens")),
            ("Tags", len(self.model.tags)),
            ("Features", metadata.get("features")),
            ("N-gram entries", _or_dash(metadata.get("ngram_entries"))),
            ("Tag dictionary entries", _or_dash(metadata.get("tag_dictionary_entries"))),
            ("Training accuracy", f"{metadata.get('training_accuracy', 0.0) * 100:.2f}%"),
            ("Model", str(model_path)),
        ]
        print("[flexipos] training summary", file=sys.stderr)
        print(tabulate(rows, tablefmt="simple_outline"), file=sys.stderr)


def train_pos_tagger(params: TrainerToolParams, samples: SampleStream, *, verbose: bool = False) -> Path:
    return POSTaggerTrainerTool(params, samples, verbose=verbose).run()


__all__ = [
    "MODEL_LABEL",
    "PipelineState",
    "POSTaggerTrainerTool",
    "TrainerToolParams",
    "train_pos_tagger",
]
