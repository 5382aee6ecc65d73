"""
Training engine for the flexipos part-of-speech tagger.

Three algorithms share one feature extractor and a greedy left-to-right
decoder:

- ``MAXENT``: multinomial logistic regression fitted with stochastic
  gradient ascent over token events.
- ``PERCEPTRON``: averaged perceptron over token events, using the gold
  tag history.
- ``PERCEPTRON_SEQUENCE``: averaged structured perceptron that updates on
  the decoder's own output for the whole sentence.

Words found in the tag dictionary are only assigned one of their listed tags.
"""

from __future__ import annotations

import json
import logging
import math
import random
import time
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .dictionary import NGramDictionary, TagDictionary
from .factory import TaggerFactory, get_factory_class
from .params import LEARNING_RATE_PARAM, AlgorithmType, TrainingParameters
from .samples import POSSample, SampleStream

logger = logging.getLogger(__name__)

MODEL_FORMAT = "flexipos-pos-1"
START_TAG = "<s>"
END_WORD = "</s>"
SHUFFLE_SEED = 42
DEFAULT_LEARNING_RATE = 0.1
WEIGHT_PRECISION = 6

Weights = Dict[str, Dict[str, float]]


def _word_shape(word: str) -> str:
    if word.isdigit():
        return "digit"
    if not any(ch.isalnum() for ch in word):
        return "punct"
    if word.isupper():
        return "upper"
    if word[:1].isupper():
        return "title"
    if word.islower():
        return "lower"
    return "mixed"


def extract_features(
    words: Sequence[str],
    index: int,
    prev_tag: str,
    prev2_tag: str,
    ngram_dictionary: Optional[NGramDictionary] = None,
) -> List[str]:
    word = words[index]
    lower = word.lower()
    prev_word = words[index - 1].lower() if index > 0 else START_TAG
    next_word = words[index + 1].lower() if index + 1 < len(words) else END_WORD

    features = [
        "bias",
        f"w={lower}",
        f"shape={_word_shape(word)}",
        f"pw={prev_word}",
        f"nw={next_word}",
        f"t-1={prev_tag}",
        f"t-2,t-1={prev2_tag},{prev_tag}",
        f"t-1,w={prev_tag},{lower}",
    ]
    for n in range(1, 4):
        if len(lower) > n:
            features.append(f"suf{n}={lower[-n:]}")
            features.append(f"pre{n}={lower[:n]}")

    if ngram_dictionary is not None:
        if (lower,) in ngram_dictionary:
            features.append("ngram=w")
        if index > 0 and (prev_word, lower) in ngram_dictionary:
            features.append("ngram=pw,w")
        if index + 1 < len(words) and (lower, next_word) in ngram_dictionary:
            features.append("ngram=w,nw")
    return features


def _score(weights: Weights, features: Iterable[str], candidates: Sequence[str]) -> Dict[str, float]:
    scores = dict.fromkeys(candidates, 0.0)
    for feature in features:
        tag_weights = weights.get(feature)
        if not tag_weights:
            continue
        for tag, weight in tag_weights.items():
            if tag in scores:
                scores[tag] += weight
    return scores


def _candidate_tags(word: str, tags: Sequence[str], tag_dictionary: Optional[TagDictionary]) -> Sequence[str]:
    if tag_dictionary is not None:
        allowed = tag_dictionary.tags(word)
        if allowed:
            known = [tag for tag in tags if tag in allowed]
            if known:
                return known
    return tags


def decode(
    words: Sequence[str],
    weights: Weights,
    tags: Sequence[str],
    tag_dictionary: Optional[TagDictionary] = None,
    ngram_dictionary: Optional[NGramDictionary] = None,
) -> List[str]:
    predicted: List[str] = []
    prev_tag, prev2_tag = START_TAG, START_TAG
    for index, word in enumerate(words):
        features = extract_features(words, index, prev_tag, prev2_tag, ngram_dictionary)
        candidates = _candidate_tags(word, tags, tag_dictionary)
        scores = _score(weights, features, candidates)
        tag = max(candidates, key=scores.__getitem__)
        predicted.append(tag)
        prev2_tag, prev_tag = prev_tag, tag
    return predicted


def _gold_features(
    sample: POSSample, ngram_dictionary: Optional[NGramDictionary]
) -> List[List[str]]:
    result = []
    prev_tag, prev2_tag = START_TAG, START_TAG
    for index, tag in enumerate(sample.tags):
        result.append(extract_features(sample.words, index, prev_tag, prev2_tag, ngram_dictionary))
        prev2_tag, prev_tag = prev_tag, tag
    return result


class _AveragedWeights:
    """Perceptron weights with lazily accumulated averages."""

    def __init__(self) -> None:
        self.weights: Weights = defaultdict(dict)
        self._totals: Dict[Tuple[str, str], float] = defaultdict(float)
        self._stamps: Dict[Tuple[str, str], int] = defaultdict(int)
        self.instances = 0

    def update(self, features: Iterable[str], tag: str, delta: float) -> None:
        for feature in features:
            key = (feature, tag)
            weight = self.weights[feature].get(tag, 0.0)
            self._totals[key] += (self.instances - self._stamps[key]) * weight
            self._stamps[key] = self.instances
            self.weights[feature][tag] = weight + delta

    def tick(self) -> None:
        self.instances += 1

    def averaged(self) -> Weights:
        result: Weights = {}
        for feature, tag_weights in self.weights.items():
            averaged: Dict[str, float] = {}
            for tag, weight in tag_weights.items():
                key = (feature, tag)
                total = self._totals[key] + (self.instances - self._stamps[key]) * weight
                value = round(total / self.instances, WEIGHT_PRECISION) if self.instances else weight
                if value:
                    averaged[tag] = value
            if averaged:
                result[feature] = averaged
        return result


def _train_perceptron(
    samples: List[POSSample],
    gold_features: List[List[List[str]]],
    tags: List[str],
    iterations: int,
    allowed_features: Set[str],
    ngram_dictionary: Optional[NGramDictionary],
    tag_dictionary: Optional[TagDictionary],
    sequence: bool,
) -> Weights:
    model = _AveragedWeights()
    rng = random.Random(SHUFFLE_SEED)
    order = list(range(len(samples)))

    for iteration in range(1, iterations + 1):
        rng.shuffle(order)
        mistakes = 0
        for idx in order:
            sample = samples[idx]
            if sequence:
                predicted = decode(sample.words, model.weights, tags, tag_dictionary, ngram_dictionary)
                if predicted != list(sample.tags):
                    mistakes += sum(1 for p, g in zip(predicted, sample.tags) if p != g)
                    prev_tag, prev2_tag = START_TAG, START_TAG
                    for index, (guess, gold) in enumerate(zip(predicted, sample.tags)):
                        guess_features = [
                            f for f in extract_features(sample.words, index, prev_tag, prev2_tag, ngram_dictionary)
                            if f in allowed_features
                        ]
                        model.update(gold_features[idx][index], gold, 1.0)
                        model.update(guess_features, guess, -1.0)
                        prev2_tag, prev_tag = prev_tag, guess
                model.tick()
                continue

            for features, gold in zip(gold_features[idx], sample.tags):
                scores = _score(model.weights, features, tags)
                guess = max(tags, key=scores.__getitem__)
                if guess != gold:
                    mistakes += 1
                    model.update(features, gold, 1.0)
                    model.update(features, guess, -1.0)
                model.tick()
        logger.debug("Perceptron iteration %d: %d mistakes", iteration, mistakes)
        if mistakes == 0:
            logger.debug("Perceptron converged after %d iterations", iteration)
            break
    return model.averaged()


def _softmax(scores: Dict[str, float]) -> Dict[str, float]:
    peak = max(scores.values())
    exps = {tag: math.exp(score - peak) for tag, score in scores.items()}
    total = sum(exps.values())
    return {tag: value / total for tag, value in exps.items()}


def _train_maxent(
    samples: List[POSSample],
    gold_features: List[List[List[str]]],
    tags: List[str],
    iterations: int,
    learning_rate: float,
) -> Weights:
    weights: Weights = defaultdict(dict)
    rng = random.Random(SHUFFLE_SEED)
    events = [
        (features, gold)
        for idx, sample in enumerate(samples)
        for features, gold in zip(gold_features[idx], sample.tags)
    ]

    for iteration in range(1, iterations + 1):
        rate = learning_rate / math.sqrt(iteration)
        rng.shuffle(events)
        log_likelihood = 0.0
        for features, gold in events:
            probs = _softmax(_score(weights, features, tags))
            log_likelihood += math.log(max(probs[gold], 1e-300))
            for tag, prob in probs.items():
                gradient = (1.0 if tag == gold else 0.0) - prob
                if abs(gradient) < 1e-9:
                    continue
                step = rate * gradient
                for feature in features:
                    tag_weights = weights[feature]
                    tag_weights[tag] = tag_weights.get(tag, 0.0) + step
        logger.debug("Maxent iteration %d: log-likelihood %.4f", iteration, log_likelihood)

    result: Weights = {}
    for feature, tag_weights in weights.items():
        rounded = {tag: round(w, WEIGHT_PRECISION) for tag, w in tag_weights.items() if round(w, WEIGHT_PRECISION)}
        if rounded:
            result[feature] = rounded
    return result


@dataclass
class POSModel:
    language: str
    algorithm: AlgorithmType
    tags: List[str]
    weights: Weights
    parameters: Dict[str, str] = field(default_factory=dict)
    factory: str = TaggerFactory.name
    ngram_dictionary: Optional[NGramDictionary] = None
    tag_dictionary: Optional[TagDictionary] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def tag(self, words: Sequence[str]) -> List[str]:
        return decode(list(words), self.weights, self.tags, self.tag_dictionary, self.ngram_dictionary)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format": MODEL_FORMAT,
            "language": self.language,
            "algorithm": self.algorithm.name,
            "factory": self.factory,
            "parameters": dict(self.parameters),
            "tags": list(self.tags),
            "ngram_dictionary": self.ngram_dictionary.to_list() if self.ngram_dictionary is not None else None,
            "tag_dictionary": self.tag_dictionary.to_dict() if self.tag_dictionary is not None else None,
            "metadata": dict(self.metadata),
            "weights": self.weights,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "POSModel":
        if data.get("format") != MODEL_FORMAT:
            raise ValueError(f"Unsupported model format: {data.get('format')!r}")
        factory = data.get("factory") or TaggerFactory.name
        ngram_data = data.get("ngram_dictionary")
        tag_data = data.get("tag_dictionary")
        return cls(
            language=data["language"],
            algorithm=AlgorithmType[data["algorithm"]],
            tags=list(data["tags"]),
            weights={feature: dict(tw) for feature, tw in data["weights"].items()},
            parameters=dict(data.get("parameters") or {}),
            factory=factory,
            ngram_dictionary=NGramDictionary.from_list(ngram_data) if ngram_data is not None else None,
            tag_dictionary=(
                get_factory_class(factory).dictionary_class.from_dict(tag_data) if tag_data is not None else None
            ),
            metadata=dict(data.get("metadata") or {}),
        )

    @classmethod
    def load(cls, path: Path) -> "POSModel":
        with Path(path).open("r", encoding="utf-8") as handle:
            return cls.from_dict(json.load(handle))


def train(
    language: str,
    samples: SampleStream,
    params: TrainingParameters,
    factory: TaggerFactory,
) -> POSModel:
    """
    Train a tagger on every sample of ``samples``.

    This is the final, consuming scan of the stream: it is read once into
    memory and never reset. Raises ``ValueError`` when the stream is empty
    and lets I/O errors from the stream propagate.
    """
    sentences = [sample for sample in samples if len(sample)]
    if not sentences:
        raise ValueError("Training data contains no samples")

    algorithm = params.algorithm
    iterations = params.iterations
    cutoff = params.cutoff
    ngram_dictionary = factory.ngram_dictionary
    tag_dictionary = factory.tag_dictionary

    tags = sorted({tag for sample in sentences for tag in sample.tags})
    gold_features = [_gold_features(sample, ngram_dictionary) for sample in sentences]
    feature_counts: Counter = Counter(f for sentence in gold_features for features in sentence for f in features)
    allowed_features = {f for f, count in feature_counts.items() if count >= cutoff}
    allowed_features.add("bias")
    gold_features = [
        [[f for f in features if f in allowed_features] for features in sentence]
        for sentence in gold_features
    ]
    token_count = sum(len(sample) for sample in sentences)
    logger.info(
        "Training %s tagger on %d sentences (%d tokens, %d tags, %d/%d features, %d iterations)",
        algorithm.value, len(sentences), token_count, len(tags),
        len(allowed_features), len(feature_counts), iterations,
    )

    started = time.perf_counter()
    if algorithm is AlgorithmType.MAXENT:
        learning_rate = params.get_float(LEARNING_RATE_PARAM, DEFAULT_LEARNING_RATE)
        weights = _train_maxent(sentences, gold_features, tags, iterations, learning_rate)
    else:
        weights = _train_perceptron(
            sentences,
            gold_features,
            tags,
            iterations,
            allowed_features,
            ngram_dictionary,
            tag_dictionary,
            sequence=algorithm.is_sequence,
        )
    elapsed = time.perf_counter() - started

    model = POSModel(
        language=language,
        algorithm=algorithm,
        tags=tags,
        weights=weights,
        parameters=params.settings,
        factory=factory.name,
        ngram_dictionary=ngram_dictionary,
        tag_dictionary=tag_dictionary,
    )
    correct = sum(
        1
        for sample in sentences
        for predicted, gold in zip(model.tag(sample.words), sample.tags)
        if predicted == gold
    )
    model.metadata = {
        "creation_date": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "sentences": len(sentences),
        "tokens": token_count,
        "features": len(allowed_features),
        "training_accuracy": round(correct / token_count, 6),
        "training_seconds": round(elapsed, 3),
        **factory.describe(),
    }
    return model
