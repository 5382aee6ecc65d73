"""Shared pytest fixtures for all tests."""

import tempfile
from pathlib import Path
from typing import List

import pytest

from flexipos.samples import ListSampleStream, POSSample

WORD_TAG_LINES = [
    "The_DET dog_NOUN runs_VERB ._PUNCT",
    "A_DET cat_NOUN sleeps_VERB ._PUNCT",
    "The_DET cat_NOUN runs_VERB ._PUNCT",
    "A_DET dog_NOUN sleeps_VERB ._PUNCT",
    "The_DET big_ADJ dog_NOUN runs_VERB ._PUNCT",
    "A_DET small_ADJ cat_NOUN sleeps_VERB ._PUNCT",
]

CONLLU_TEXT = """# sent_id = 1
# text = The dog runs.
1\tThe\tthe\tDET\tDT\t_\t2\tdet\t_\t_
2\tdog\tdog\tNOUN\tNN\t_\t3\tnsubj\t_\t_
3\truns\trun\tVERB\tVBZ\t_\t0\troot\t_\tSpaceAfter=No
4\t.\t.\tPUNCT\t.\t_\t3\tpunct\t_\t_

# sent_id = 2
# text = A cat sleeps.
1\tA\ta\tDET\tDT\t_\t2\tdet\t_\t_
2\tcat\tcat\tNOUN\tNN\t_\t3\tnsubj\t_\t_
3\tsleeps\tsleep\tVERB\tVBZ\t_\t0\troot\t_\tSpaceAfter=No
4\t.\t.\tPUNCT\t.\t_\t3\tpunct\t_\t_

"""


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def word_tag_samples() -> List[POSSample]:
    return [
        POSSample.from_pairs(token.rsplit("_", 1) for token in line.split())
        for line in WORD_TAG_LINES
    ]


@pytest.fixture
def sample_stream(word_tag_samples) -> ListSampleStream:
    return ListSampleStream(word_tag_samples)


@pytest.fixture
def word_tag_file(temp_dir) -> Path:
    path = temp_dir / "train.txt"
    path.write_text("\n".join(WORD_TAG_LINES) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def conllu_file(temp_dir) -> Path:
    path = temp_dir / "train.conllu"
    path.write_text(CONLLU_TEXT, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def isolated_config(temp_dir, monkeypatch):
    """Keep tests away from the user's flexipos config."""
    monkeypatch.setenv("FLEXIPOS_CONFIG_DIR", str(temp_dir / "config"))
    monkeypatch.delenv("FLEXIPOS_LANGUAGE", raising=False)
    monkeypatch.delenv("FLEXIPOS_FORMAT", raising=False)
