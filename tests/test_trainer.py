import pytest

from sift.core.article import Label, LabeledCorpus, TrainingExample
from sift.core.errors import InsufficientTrainingData, PersistenceWriteError
from sift.core.trainer import FULL_EPOCHS, Trainer
from sift.utils.nlp import vectorize


def test_build_requires_two_examples_per_class(trainer, approved_records, junk_records, monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("network must not be created")

    monkeypatch.setattr("sift.core.trainer.FeedforwardNetwork", fail)
    corpus = LabeledCorpus.from_sets(approved_records, junk_records[:1])
    with pytest.raises(InsufficientTrainingData):
        trainer.build(corpus)
    assert trainer.full_retrain(corpus) is False
    assert trainer.store.load_active() is None


def test_full_retrain_separates_classes(trainer, corpus, chip_article, lottery_article):
    assert trainer.full_retrain(corpus) is True

    state = trainer.store.load_active()
    assert state.training_count == len(corpus) * FULL_EPOCHS
    assert "chip" in state.vocabulary and "lottery" in state.vocabulary

    chip = state.network.predict(vectorize(chip_article, state.vocabulary))
    lottery = state.network.predict(vectorize(lottery_article, state.vocabulary))
    assert round(100 * chip) > 50
    assert round(100 * lottery) < 50


def test_error_checkpoints_mostly_decrease(trainer, corpus):
    _, checkpoints = trainer.build(corpus)
    assert len(checkpoints) == FULL_EPOCHS // 20
    decreases = sum(1 for a, b in zip(checkpoints, checkpoints[1:]) if b <= a + 0.01)
    assert decreases >= len(checkpoints) - 2
    assert checkpoints[-1] < checkpoints[0] + 0.01
    assert checkpoints[-1] < 0.5


def test_retrain_keeps_model_when_save_fails(trainer, corpus, monkeypatch):
    def broken_save(state):
        raise PersistenceWriteError("disk full")

    monkeypatch.setattr(trainer.store, "save", broken_save)
    state = trainer.retrain(corpus)
    assert state.persisted is False
    assert state.network.input_size == len(state.vocabulary)
    assert trainer.full_retrain(corpus) is False


def test_full_retrain_replaces_active_model(trainer, corpus):
    trainer.full_retrain(corpus)
    first = trainer.store.load_active()
    trainer.full_retrain(corpus)
    second = trainer.store.load_active()
    assert second.model_id != first.model_id
    assert sum(row["is_active"] for row in trainer.store.history()) == 1


def test_incremental_updates_active_model(trainer, corpus):
    trainer.full_retrain(corpus)
    before = trainer.store.load_active()

    new = [
        TrainingExample(title="Chip semiconductor processor launch", label=Label.APPROVED),
        TrainingExample(title="Quantum widget unveiled", label=Label.JUNK),
    ]
    assert trainer.incremental(new, epochs=5) is True

    after = trainer.store.load_active()
    assert after.model_id == before.model_id
    assert after.version == before.version + 1
    assert after.vocabulary == before.vocabulary
    assert "quantum" not in after.vocabulary
    assert after.training_count == before.training_count + len(new) * 5


def test_incremental_without_new_data(trainer, corpus):
    trainer.full_retrain(corpus)
    assert trainer.incremental([]) is False


def test_incremental_without_model_or_history(trainer):
    new = [TrainingExample(title="Chip news", label=Label.APPROVED)]
    assert trainer.incremental(new) is False
    assert trainer.store.load_active() is None


def test_incremental_without_model_uses_history(store, rng, corpus):
    trainer = Trainer(store=store, rng=rng, history=lambda: corpus, show_progress=False)
    new = [TrainingExample(title="Chip news", label=Label.APPROVED)]
    assert trainer.incremental(new) is True
    state = store.load_active()
    assert state.training_count == len(corpus) * FULL_EPOCHS


def test_incremental_save_failure_reports_false(trainer, corpus, monkeypatch):
    trainer.full_retrain(corpus)

    def broken_update(state):
        raise PersistenceWriteError("locked")

    monkeypatch.setattr(trainer.store, "update", broken_update)
    new = [TrainingExample(title="Chip news", label=Label.APPROVED)]
    assert trainer.incremental(new) is False
