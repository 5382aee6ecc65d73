"""End-to-end tests for the command line."""

import pytest

from flexipos.__main__ import build_parser, main
from flexipos.errors import EXIT_CONFIG_ERROR, EXIT_IO_ERROR, EXIT_SUCCESS
from flexipos.settings import write_config
from flexipos.trainer import POSModel


def _train_args(data, model, *extra):
    return ["train", "--data", str(data), "--model", str(model), "--iterations", "3", "--cutoff", "0", *extra]


def test_parser_defaults():
    args = build_parser().parse_args(["train", "--data", "x", "--model", "y"])
    assert args.format is None
    assert args.tag_column == "upos"
    assert args.algorithm is None
    assert args.tag_dict is None


def test_negative_cutoff_rejected_by_parser():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["train", "--data", "x", "--model", "y", "--cutoff", "-1"])


def test_train_word_tag_corpus(word_tag_file, temp_dir, capsys):
    model_path = temp_dir / "en.model"
    code = main(_train_args(word_tag_file, model_path, "--format", "word_tag", "--lang", "eng", "--type", "perceptron"))

    assert code == EXIT_SUCCESS
    model = POSModel.load(model_path)
    assert model.language == "en"
    assert model.algorithm.name == "PERCEPTRON"
    assert "Wrote pos tagger model to path" in capsys.readouterr().err


def test_train_conllu_with_dictionaries(conllu_file, temp_dir):
    model_path = temp_dir / "en.model"
    code = main(
        _train_args(conllu_file, model_path, "--lang", "en", "--ngram", "1", "--tag-dict-cutoff", "1",
                    "--tag-column", "xpos")
    )
    assert code == EXIT_SUCCESS
    model = POSModel.load(model_path)
    assert "VBZ" in model.tags
    assert model.tag_dictionary.tags("dog") == frozenset({"NN"})


def test_language_from_config(word_tag_file, temp_dir):
    write_config({"default_language": "de", "default_format": "word_tag"})
    model_path = temp_dir / "de.model"
    assert main(_train_args(word_tag_file, model_path)) == EXIT_SUCCESS
    assert POSModel.load(model_path).language == "de"


def test_language_from_environment(word_tag_file, temp_dir, monkeypatch):
    monkeypatch.setenv("FLEXIPOS_LANGUAGE", "fr")
    monkeypatch.setenv("FLEXIPOS_FORMAT", "word_tag")
    model_path = temp_dir / "fr.model"
    assert main(_train_args(word_tag_file, model_path)) == EXIT_SUCCESS
    assert POSModel.load(model_path).language == "fr"


def test_missing_language(word_tag_file, temp_dir, capsys):
    code = main(_train_args(word_tag_file, temp_dir / "x.model", "--format", "word_tag"))
    assert code == EXIT_CONFIG_ERROR
    assert "[flexipos] A language identifier is required" in capsys.readouterr().err


def test_unknown_algorithm_exit_code(word_tag_file, temp_dir, capsys):
    code = main(_train_args(word_tag_file, temp_dir / "x.model", "--format", "word_tag", "--lang", "en",
                            "--type", "MAXENT"))
    assert code == EXIT_CONFIG_ERROR
    assert "Unknown algorithm type 'MAXENT'" in capsys.readouterr().err
    assert not (temp_dir / "x.model").exists()


def test_missing_data_file(temp_dir):
    code = main(_train_args(temp_dir / "none.txt", temp_dir / "x.model", "--lang", "en"))
    assert code == EXIT_CONFIG_ERROR


def test_malformed_corpus_exit_code(temp_dir, capsys):
    data = temp_dir / "broken.txt"
    data.write_text("The_DET dog\n", encoding="utf-8")
    code = main(_train_args(data, temp_dir / "x.model", "--format", "word_tag", "--lang", "en"))
    assert code == EXIT_IO_ERROR
    assert "IO error while reading training data" in capsys.readouterr().err


def test_invalid_parameters_file_exit_code(word_tag_file, temp_dir):
    params = temp_dir / "bad.params"
    params.write_text("TrainerType=Sequence\nAlgorithm=MAXENT\n", encoding="utf-8")
    code = main(_train_args(word_tag_file, temp_dir / "x.model", "--format", "word_tag", "--lang", "en",
                            "--params", str(params)))
    assert code == EXIT_CONFIG_ERROR


def test_undecodable_corpus_during_ngram_scan(temp_dir, capsys):
    data = temp_dir / "latin.txt"
    data.write_bytes(b"\xff\xfe_NOUN\n")
    code = main(_train_args(data, temp_dir / "x.model", "--format", "word_tag", "--lang", "en", "--ngram", "1"))
    assert code == EXIT_IO_ERROR
    assert "[flexipos] IO error while building NGram Dictionary" in capsys.readouterr().err


def test_undecodable_tag_dictionary(word_tag_file, temp_dir, capsys):
    dict_path = temp_dir / "tags.dict"
    dict_path.write_bytes(b'{"\xff": ["NOUN"]}')
    code = main(_train_args(word_tag_file, temp_dir / "x.model", "--format", "word_tag", "--lang", "en",
                            "--dict", str(dict_path)))
    assert code == EXIT_IO_ERROR
    assert "[flexipos] IO error while loading POS Dictionary" in capsys.readouterr().err


def test_unknown_encoding(word_tag_file, temp_dir, capsys):
    code = main(_train_args(word_tag_file, temp_dir / "x.model", "--format", "word_tag", "--lang", "en",
                            "--encoding", "nope"))
    assert code == EXIT_CONFIG_ERROR
    assert "[flexipos] Unknown encoding 'nope'" in capsys.readouterr().err
