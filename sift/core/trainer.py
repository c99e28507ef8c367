"""
Training orchestration for Sift.

Full retrains rebuild the vocabulary and network from the whole labeled
corpus. Incremental training continues the active network on newly labeled
examples, keeping its vocabulary.
"""
import logging
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np
from tqdm import tqdm

from sift.config import get_config
from sift.core.article import Label, LabeledCorpus, TrainingExample
from sift.core.errors import CorruptModelError, InsufficientTrainingData, PersistenceWriteError
from sift.core.network import FeedforwardNetwork, NetworkState
from sift.core.store import ModelStore
from sift.utils.nlp import MAX_FEATURES, build_vocabulary, vectorize

# Configure logging
logger = logging.getLogger(__name__)

FULL_EPOCHS = 100
INCREMENTAL_EPOCHS = 20
CHECKPOINT_EVERY = 20
MIN_EXAMPLES_PER_CLASS = 2

# (feature vector, target vector) pairs fed to the network
Sample = Tuple[np.ndarray, np.ndarray]


def prepare_samples(examples: Sequence[TrainingExample], vocabulary: List[str]) -> List[Sample]:
    """
    Vectorize labeled examples against a vocabulary.

    Args:
        examples: Labeled training examples
        vocabulary: Vocabulary defining the feature space

    Returns:
        List of (input, target) arrays
    """
    return [
        (
            np.asarray(vectorize(example, vocabulary), dtype=np.float64),
            np.asarray(example.target, dtype=np.float64),
        )
        for example in examples
    ]


def average_error(network: FeedforwardNetwork, samples: List[Sample]) -> float:
    """Mean absolute difference between target and prediction."""
    if not samples:
        return 0.0
    return sum(abs(float(target[0]) - network.predict(x)) for x, target in samples) / len(samples)


class Trainer:
    """
    Runs full and incremental training and persists the results.
    """
    def __init__(
        self,
        store: Optional[ModelStore] = None,
        rng: Optional[np.random.Generator] = None,
        history: Optional[Callable[[], LabeledCorpus]] = None,
        show_progress: Optional[bool] = None,
    ):
        """
        Initialize the Trainer.

        Args:
            store: Model store (a default store is opened if omitted)
            rng: Random generator for initialization and shuffling
            history: Returns every labeled example; used when incremental
                training finds no model to continue
            show_progress: Show a tqdm bar over epochs
        """
        self.store = store if store is not None else ModelStore()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.history = history
        if show_progress is None:
            show_progress = bool(get_config('training.progress', False))
        self.show_progress = show_progress

    def fit(self, network: FeedforwardNetwork, samples: List[Sample], epochs: int) -> List[float]:
        """
        Online SGD: shuffle every epoch, then one update per example.

        Args:
            network: Network to train in place
            samples: Training pairs (shuffled in place)
            epochs: Number of passes

        Returns:
            Average absolute error after every CHECKPOINT_EVERY epochs
        """
        checkpoints = []
        epoch_range = range(epochs)
        if self.show_progress:
            epoch_range = tqdm(epoch_range, desc="Training", unit="epoch")

        for epoch in epoch_range:
            # Generator.shuffle is an in-place Fisher-Yates shuffle
            self.rng.shuffle(samples)
            for x, target in samples:
                network.train_one(x, target)

            if (epoch + 1) % CHECKPOINT_EVERY == 0:
                error = average_error(network, samples)
                checkpoints.append(error)
                logger.info(f"Epoch {epoch + 1}/{epochs}, Avg Error: {error:.4f}")

        return checkpoints

    def build(self, corpus: LabeledCorpus, epochs: int = FULL_EPOCHS) -> Tuple[NetworkState, List[float]]:
        """
        Train a fresh vocabulary and network on the whole corpus.

        Args:
            corpus: All labeled examples
            epochs: Number of passes

        Returns:
            Tuple of (unsaved NetworkState, error checkpoints)

        Raises:
            InsufficientTrainingData: With fewer than two examples per class
        """
        if not corpus.has_minimum(MIN_EXAMPLES_PER_CLASS):
            raise InsufficientTrainingData(
                f"Need at least {MIN_EXAMPLES_PER_CLASS} approved and "
                f"{MIN_EXAMPLES_PER_CLASS} junk articles",
                details={"approved": len(corpus.approved), "junk": len(corpus.junk)},
            )

        logger.info("Building vocabulary from training data...")
        vocabulary = build_vocabulary(corpus.examples, MAX_FEATURES)
        logger.info(f"Vocabulary size: {len(vocabulary)}")

        network = FeedforwardNetwork(len(vocabulary), rng=self.rng)
        samples = prepare_samples(corpus.examples, vocabulary)

        logger.info(f"Full training on {len(samples)} examples for {epochs} epochs...")
        checkpoints = self.fit(network, samples, epochs)

        state = NetworkState(
            network=network,
            vocabulary=vocabulary,
            training_count=len(samples) * epochs,
        )
        return state, checkpoints

    def retrain(self, corpus: LabeledCorpus) -> NetworkState:
        """
        Full retrain, saved as the new active model.

        A failed save is logged; the trained state is still returned with
        persisted=False so the caller can score with it.

        Args:
            corpus: All labeled examples

        Returns:
            The trained NetworkState

        Raises:
            InsufficientTrainingData: With fewer than two examples per class
        """
        logger.info("Starting full model retrain...")
        state, _ = self.build(corpus)
        try:
            self.store.save(state)
        except PersistenceWriteError as e:
            logger.error(f"Trained model was not saved: {e}")
        else:
            logger.info("Full retrain complete!")
        return state

    def full_retrain(self, corpus: LabeledCorpus) -> bool:
        """
        Full retrain that reports success as a boolean.

        Returns:
            True if a model was trained and saved
        """
        try:
            state = self.retrain(corpus)
        except InsufficientTrainingData as e:
            logger.warning(f"Insufficient training data: {e}")
            return False
        return state.persisted

    def incremental(self, new_examples: Sequence[TrainingExample], epochs: int = INCREMENTAL_EPOCHS) -> bool:
        """
        Continue training the active model on newly labeled examples.

        The active vocabulary is reused unchanged, so words it does not
        contain are ignored. Without a usable active model this falls back
        to a full retrain over the history corpus.

        Args:
            new_examples: Examples labeled since the model was last trained
            epochs: Passes over the new examples

        Returns:
            True if the model was trained and saved
        """
        new_examples = list(new_examples)
        logger.info("Starting incremental training...")
        logger.info(
            f"New data: {sum(1 for e in new_examples if e.label == Label.APPROVED)} approved, "
            f"{sum(1 for e in new_examples if e.label == Label.JUNK)} junk"
        )

        try:
            state = self.store.load_active()
        except CorruptModelError as e:
            logger.warning(f"Active model is unusable, retraining from scratch: {e}")
            state = None

        if state is None:
            if self.history is None:
                logger.warning("No existing model and no training history available")
                return False
            logger.info("No existing model - performing full training")
            return self.full_retrain(self.history())

        if not new_examples:
            logger.info("No new training data")
            return False

        samples = prepare_samples(new_examples, state.vocabulary)
        logger.info(f"Incremental training on {len(samples)} new examples for {epochs} epochs...")
        self.fit(state.network, samples, epochs)
        state.training_count += len(samples) * epochs

        try:
            self.store.update(state)
        except PersistenceWriteError as e:
            logger.error(f"Incremental update was not saved: {e}")
            return False

        logger.info("Incremental training complete!")
        return True
