"""Tests for user configuration and language normalization."""

import pytest

from flexipos.errors import ConfigurationError
from flexipos.language_utils import normalize_language
from flexipos.settings import get_config_file, get_default, read_config, write_config


class TestConfig:
    def test_missing_file_reads_empty(self):
        assert read_config() == {}

    def test_write_merges(self):
        write_config({"default_language": "nl"})
        write_config({"default_cutoff": 2})
        assert read_config() == {"default_language": "nl", "default_cutoff": 2}

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="Unknown configuration keys"):
            write_config({"colour": "blue"})

    def test_corrupt_file_is_ignored(self):
        get_config_file().write_text("{oops", encoding="utf-8")
        assert read_config() == {}

    def test_environment_wins_over_file(self, monkeypatch):
        write_config({"default_format": "conllu"})
        monkeypatch.setenv("FLEXIPOS_FORMAT", "word_tag")
        assert get_default("default_format") == "word_tag"

    def test_fallback(self):
        assert get_default("default_factory", "default") == "default"


class TestLanguage:
    @pytest.mark.parametrize(
        "code, expected",
        [("en", "en"), ("eng", "en"), ("pt-BR", "pt"), ("English", "en"), ("und", "und"), ("got", "got")],
    )
    def test_normalize(self, code, expected):
        assert normalize_language(code) == expected

    @pytest.mark.parametrize("code", [None, "", "xyzzy"])
    def test_rejects_unknown(self, code):
        with pytest.raises(ConfigurationError):
            normalize_language(code)
