"""
Confidence scoring for Sift.

ConfidenceScorer is the entry point the rest of the application uses: it
scores candidate articles against the user's approved and junk decisions
and exposes the two training operations.
"""
import logging
from typing import Callable, List, Optional, Sequence

from sift.config import get_config
from sift.core.article import Article, LabeledCorpus, TrainingExample
from sift.core.errors import CorruptModelError, InsufficientTrainingData, NumericInstabilityError
from sift.core.fallback import KeywordScorer
from sift.core.network import NetworkState
from sift.core.result import ScoreResult, ScorerKind, to_confidence
from sift.core.store import ModelStore
from sift.core.trainer import INCREMENTAL_EPOCHS, MIN_EXAMPLES_PER_CLASS, Trainer
from sift.utils.nlp import vectorize

# Configure logging
logger = logging.getLogger(__name__)

METHODS = ("network", "keywords")


class ConfidenceScorer:
    """
    Scores articles with the persisted neural network or the keyword
    fallback.
    """
    def __init__(
        self,
        store: Optional[ModelStore] = None,
        trainer: Optional[Trainer] = None,
        fallback: Optional[KeywordScorer] = None,
        method: Optional[str] = None,
        history: Optional[Callable[[], LabeledCorpus]] = None,
    ):
        """
        Initialize the ConfidenceScorer.

        Args:
            store: Model store (shared with the trainer when one is built here)
            trainer: Trainer used for cold starts and training requests
            fallback: Keyword scorer
            method: 'network' or 'keywords' (defaults to scoring.method)
            history: Returns every labeled example; lets incremental training
                fall back to a full retrain when no model exists yet
        """
        if trainer is not None and store is None:
            store = trainer.store
        self.store = store if store is not None else ModelStore()
        self.trainer = trainer if trainer is not None else Trainer(store=self.store)
        if history is not None:
            self.trainer.history = history
        self.fallback = fallback or KeywordScorer()
        self.method = method or get_config('scoring.method', 'network')
        if self.method not in METHODS:
            raise ValueError(f"Unknown scoring method: {self.method}")

    def score_batch(self, articles: Sequence[Article], corpus: LabeledCorpus) -> List[ScoreResult]:
        """
        Score a batch of articles.

        Args:
            articles: Candidate articles
            corpus: The user's labeled approved and junk examples

        Returns:
            One ScoreResult per article, in order
        """
        articles = list(articles)
        if corpus.is_empty:
            return [ScoreResult.neutral("No training data yet") for _ in articles]

        if self.method == "keywords":
            return self.fallback.score_batch(articles, corpus)

        if not corpus.has_minimum(MIN_EXAMPLES_PER_CLASS):
            reason = (
                f"Insufficient training data - need at least {MIN_EXAMPLES_PER_CLASS} "
                f"approved and {MIN_EXAMPLES_PER_CLASS} junk articles"
            )
            return [ScoreResult.neutral(reason) for _ in articles]

        state = self._active_state(corpus)
        if state is None:
            return [ScoreResult.neutral("No model available - neutral score") for _ in articles]

        logger.info(f"Scoring {len(articles)} articles with model {state.model_id}")
        return [self._score_one(article, state) for article in articles]

    def _active_state(self, corpus: LabeledCorpus) -> Optional[NetworkState]:
        """
        Load the active model, training and saving one if there is none.
        """
        try:
            state = self.store.load_active()
        except CorruptModelError as e:
            logger.warning(f"Stored model is unusable, retraining: {e}")
            state = None

        if state is not None:
            logger.info("Using saved model for scoring")
            return state

        logger.info("No saved model - training new model")
        try:
            return self.trainer.retrain(corpus)
        except InsufficientTrainingData as e:
            logger.warning(f"Cannot train a model: {e}")
            return None

    def _score_one(self, article: Article, state: NetworkState) -> ScoreResult:
        try:
            features = vectorize(article, state.vocabulary)
            prediction = state.network.predict(features)
        except NumericInstabilityError as e:
            logger.warning(f"Numeric instability scoring '{article.title}': {e}")
            return ScoreResult.neutral("Numeric instability - neutral score")
        except Exception as e:
            logger.warning(f"Failed to score article '{getattr(article, 'title', article)}': {e}")
            return ScoreResult.neutral("Scoring error - neutral score")

        return ScoreResult.from_confidence(to_confidence(prediction), ScorerKind.NETWORK)

    def full_retrain(self, corpus: LabeledCorpus) -> bool:
        """
        Rebuild the vocabulary and network from the whole corpus.

        Args:
            corpus: All labeled examples

        Returns:
            True if a new model was trained and saved
        """
        return self.trainer.full_retrain(corpus)

    def incremental_train(
        self,
        new_examples: Sequence[TrainingExample],
        epochs: int = INCREMENTAL_EPOCHS,
    ) -> bool:
        """
        Continue training the active model on newly labeled examples.

        Args:
            new_examples: Newly approved or junked articles, with labels
            epochs: Passes over the new examples

        Returns:
            True if the model was trained and saved
        """
        return self.trainer.incremental(new_examples, epochs)
