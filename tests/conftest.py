# tests/conftest.py
import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from sift.core.article import Article, LabeledCorpus
from sift.core.store import ModelStore
from sift.core.trainer import Trainer


APPROVED = [
    {"title": "Chip semiconductor processor roadmap", "description": "Foundry plans", "source_name": "Tech Wire"},
    {"title": "Chip semiconductor processor shortage", "description": "Automakers wait", "source_name": "Tech Wire"},
    {"title": "Chip semiconductor processor benchmark", "description": "Laptops tested", "source_name": "Bench Daily"},
]

JUNK = [
    {"title": "Lottery jackpot prize tonight", "description": "Tickets selling", "source_name": "Spam News"},
    {"title": "Lottery jackpot prize winner", "description": "Retiree celebrates", "source_name": "Spam News"},
    {"title": "Lottery jackpot prize numbers", "description": "Lucky picks", "source_name": "Clickbait"},
]


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def store(tmp_path):
    return ModelStore(tmp_path / "models.db", max_tries=1)


@pytest.fixture
def trainer(store, rng):
    return Trainer(store=store, rng=rng, show_progress=False)


@pytest.fixture
def corpus():
    return LabeledCorpus.from_sets(APPROVED, JUNK)


@pytest.fixture
def chip_article():
    return Article(title="Chip semiconductor processor news")


@pytest.fixture
def lottery_article():
    return Article(title="Lottery jackpot prize announced")


@pytest.fixture
def approved_records():
    return [dict(record) for record in APPROVED]


@pytest.fixture
def junk_records():
    return [dict(record) for record in JUNK]
