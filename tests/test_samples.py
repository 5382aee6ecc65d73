"""Unit tests for sample streams and corpus readers."""

import pytest

from flexipos.errors import InvalidFormatError
from flexipos.samples import ListSampleStream, POSSample, open_sample_stream


class TestPOSSample:
    def test_mismatched_lengths_rejected(self):
        with pytest.raises(InvalidFormatError):
            POSSample(("a", "b"), ("DET",))

    def test_str_uses_word_tag_notation(self):
        assert str(POSSample(("The", "dog"), ("DET", "NOUN"))) == "The_DET dog_NOUN"


class TestSampleStreamProtocol:
    def test_scan_reset_close_events(self, sample_stream, word_tag_samples):
        assert list(sample_stream) == word_tag_samples
        sample_stream.reset()
        assert list(sample_stream) == word_tag_samples
        sample_stream.close()

        assert sample_stream.scans == 2
        assert sample_stream.resets == 1
        assert sample_stream.events == ["scan", "reset", "scan", "close"]

    def test_read_returns_none_when_exhausted(self):
        stream = ListSampleStream([POSSample(("a",), ("DET",))])
        assert stream.read() is not None
        assert stream.read() is None
        assert stream.read() is None
        assert stream.scans == 1

    def test_close_is_idempotent(self, sample_stream):
        sample_stream.close()
        sample_stream.close()
        assert sample_stream.events == ["close"]
        assert sample_stream.closed

    def test_read_after_close_fails(self, sample_stream):
        sample_stream.close()
        with pytest.raises(OSError):
            sample_stream.read()

    def test_context_manager_closes(self, word_tag_samples):
        with ListSampleStream(word_tag_samples) as stream:
            stream.read()
        assert stream.closed


class TestFileSampleStream:
    def test_word_tag_file(self, word_tag_file):
        stream = open_sample_stream(word_tag_file, "word_tag")
        samples = list(stream)
        assert len(samples) == 6
        assert samples[0].words == ("The", "dog", "runs", ".")
        assert samples[0].tags == ("DET", "NOUN", "VERB", "PUNCT")

    def test_word_tag_splits_on_last_underscore(self, temp_dir):
        path = temp_dir / "under.txt"
        path.write_text("New_York_PROPN is_VERB\n", encoding="utf-8")
        sample = next(iter(open_sample_stream(path, "word_tag")))
        assert sample.words == ("New_York", "is")

    def test_word_tag_invalid_token(self, temp_dir):
        path = temp_dir / "bad.txt"
        path.write_text("The_DET dog\n", encoding="utf-8")
        with pytest.raises(InvalidFormatError, match="line 1"):
            list(open_sample_stream(path, "word_tag"))

    def test_conllu_file_upos_and_xpos(self, conllu_file):
        upos = list(open_sample_stream(conllu_file, "conllu"))
        xpos = list(open_sample_stream(conllu_file, "conllu", tag_column="xpos"))
        assert upos[0].tags == ("DET", "NOUN", "VERB", "PUNCT")
        assert xpos[0].tags == ("DT", "NN", "VBZ", ".")

    def test_file_is_reread_after_reset(self, word_tag_file):
        stream = open_sample_stream(word_tag_file, "word_tag")
        first = list(stream)
        stream.reset()
        second = list(stream)
        stream.close()
        assert first == second
        assert stream.events == ["scan", "reset", "scan", "close"]

    def test_stream_is_lazy(self, temp_dir):
        stream = open_sample_stream(temp_dir / "not-there.txt", "word_tag")
        with pytest.raises(OSError):
            stream.read()
        stream.close()

    def test_unknown_format(self, word_tag_file):
        with pytest.raises(InvalidFormatError, match="Unknown sample format"):
            open_sample_stream(word_tag_file, "xml")

    def test_unknown_encoding(self, word_tag_file):
        with pytest.raises(InvalidFormatError, match="Unknown encoding 'nope'"):
            open_sample_stream(word_tag_file, "word_tag", encoding="nope")

    def test_undecodable_bytes(self, temp_dir):
        path = temp_dir / "latin.txt"
        path.write_bytes(b"\xff\xfe_NOUN\n")
        with pytest.raises(UnicodeDecodeError):
            list(open_sample_stream(path, "word_tag"))


class TestConllu:
    def test_ranges_and_comments_are_skipped(self, conllu_file):
        text = conllu_file.read_text(encoding="utf-8").replace(
            "1\tThe\tthe", "# genre = news\n1-2\tThedog\t_\t_\t_\t_\t_\t_\t_\t_\n1\tThe\tthe", 1
        )
        conllu_file.write_text(text, encoding="utf-8")
        samples = list(open_sample_stream(conllu_file, "conllu"))
        assert len(samples) == 2
        assert samples[0].words == ("The", "dog", "runs", ".")

    def test_short_line_rejected(self, temp_dir):
        path = temp_dir / "short.conllu"
        path.write_text("1\tThe\tthe\n", encoding="utf-8")
        with pytest.raises(InvalidFormatError, match="line 1 has 3 columns"):
            list(open_sample_stream(path, "conllu"))

    def test_missing_tag_names_sentence(self, temp_dir):
        path = temp_dir / "untagged.conllu"
        path.write_text("# sent_id = weblog-7\n1\tThe\tthe\t_\tDT\t_\t0\troot\t_\t_\n\n", encoding="utf-8")
        with pytest.raises(InvalidFormatError, match="Sentence 'weblog-7' has tokens without a upos tag"):
            list(open_sample_stream(path, "conllu"))
