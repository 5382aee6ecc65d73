from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .cmdline import check_input_file
from .errors import EXIT_SUCCESS, ConfigurationError, InvalidFormatError, TerminateToolError
from .factory import DEFAULT_FACTORY, available_factories
from .language_utils import normalize_language
from .params import DEFAULT_ALGORITHM, DEFAULT_CUTOFF, DEFAULT_ITERATIONS, AlgorithmType
from .samples import SAMPLE_FORMATS, open_sample_stream
from .settings import get_default
from .train import TrainerToolParams, train_pos_tagger

TASK_CHOICES = ("train",)


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected an integer, got '{value}'") from exc
    if number < 0:
        raise argparse.ArgumentTypeError(f"Expected a non-negative integer, got {number}")
    return number


def _configure_logging(args: argparse.Namespace) -> None:
    if getattr(args, "debug", False):
        level = logging.DEBUG
    elif getattr(args, "verbose", False):
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="[flexipos] %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    from . import __version__

    parser = argparse.ArgumentParser(
        prog="python -m flexipos",
        description="Train part-of-speech tagger models",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--version", "-V", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="task", required=False)

    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument("--debug", action="store_true", help="Enable verbose debug logging")
    parent_parser.add_argument("--verbose", action="store_true", help="Print progress messages and a training summary")

    # train ---------------------------------------------------------------
    train_parser = subparsers.add_parser(
        "train",
        parents=[parent_parser],
        help="Train a model for the part-of-speech tagger",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    train_parser.add_argument("--data", type=Path, required=True, help="Training data file")
    train_parser.add_argument(
        "--format",
        choices=sorted(SAMPLE_FORMATS),
        default=None,
        help="Training data format (default: configured default_format, else conllu)",
    )
    train_parser.add_argument(
        "--tag-column",
        choices=["upos", "xpos"],
        default="upos",
        help="CoNLL-U column holding the tags to train on",
    )
    train_parser.add_argument("--encoding", default="utf-8", help="Encoding of the training data")
    train_parser.add_argument(
        "--lang",
        default=None,
        help="Language of the training data (ISO 639 code; default: configured default_language)",
    )
    train_parser.add_argument("--model", type=Path, required=True, help="Output model file")
    train_parser.add_argument("--params", type=Path, default=None, help="Training parameters file")
    train_parser.add_argument(
        "--iterations",
        type=_non_negative_int,
        default=None,
        help=f"Number of training iterations, ignored with --params (default: {DEFAULT_ITERATIONS})",
    )
    train_parser.add_argument(
        "--cutoff",
        type=_non_negative_int,
        default=None,
        help=f"Minimal number of times a feature must be seen, ignored with --params (default: {DEFAULT_CUTOFF})",
    )
    train_parser.add_argument(
        "--type",
        dest="algorithm",
        default=None,
        help=(
            "Training algorithm: "
            + ", ".join(a.value for a in AlgorithmType)
            + f" (default: {DEFAULT_ALGORITHM}), ignored with --params"
        ),
    )
    train_parser.add_argument(
        "--ngram",
        type=_non_negative_int,
        default=None,
        help="Build an n-gram dictionary keeping n-grams seen at least this many times",
    )
    train_parser.add_argument("--dict", dest="tag_dict", type=Path, default=None, help="Tag dictionary file")
    train_parser.add_argument(
        "--tag-dict-cutoff",
        type=_non_negative_int,
        default=None,
        help="Add word/tag pairs seen at least this many times to the tag dictionary",
    )
    train_parser.add_argument(
        "--factory",
        default=None,
        help=f"Tagger factory: {', '.join(available_factories())} (default: configured default_factory, else {DEFAULT_FACTORY})",
    )
    return parser


def _config_int(key: str) -> Optional[int]:
    value = get_default(key)
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Configuration value {key}={value!r} is not an integer") from exc


def run_train(args: argparse.Namespace) -> int:
    """Run the train command."""
    check_input_file("training data", args.data)
    language = normalize_language(args.lang or get_default("default_language"))
    fmt = args.format or get_default("default_format", "conllu")

    params = TrainerToolParams(
        model=args.model,
        lang=language,
        params=args.params,
        iterations=args.iterations if args.iterations is not None else _config_int("default_iterations"),
        cutoff=args.cutoff if args.cutoff is not None else _config_int("default_cutoff"),
        algorithm=args.algorithm,
        ngram=args.ngram,
        tag_dict=args.tag_dict,
        tag_dict_cutoff=args.tag_dict_cutoff,
        factory=args.factory or get_default("default_factory"),
    )
    try:
        samples = open_sample_stream(args.data, fmt, tag_column=args.tag_column, encoding=args.encoding)
    except InvalidFormatError as exc:
        raise ConfigurationError(str(exc)) from exc

    train_pos_tagger(params, samples, verbose=args.verbose or args.debug)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    else:
        argv = list(argv)

    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.task:
        parser.error("No task specified. Use one of: " + ", ".join(TASK_CHOICES))

    _configure_logging(args)
    try:
        if args.task == "train":
            return run_train(args)
    except TerminateToolError as exc:
        print(f"[flexipos] {exc.message}", file=sys.stderr)
        return exc.code

    parser.error(f"Unknown task '{args.task}'. Supported tasks: {', '.join(TASK_CHOICES)}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
