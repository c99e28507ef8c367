"""
Keyword fallback scorer for Sift.

Scores articles from word frequencies in the approved and junk sets without
needing a trained network.
"""
import logging
from typing import Dict, List

from sift.core.article import Article, LabeledCorpus
from sift.core.result import NEUTRAL_CONFIDENCE, ScoreResult, ScorerKind, to_confidence
from sift.utils.nlp import extract_keywords, word_frequency

# Configure logging
logger = logging.getLogger(__name__)

# How many matched keywords to quote in the reasoning
MAX_QUOTED_KEYWORDS = 5


class KeywordScorer:
    """
    Frequency-ratio classifier over the approved and junk corpora.
    """
    def frequencies(self, corpus: LabeledCorpus):
        """
        Normalized word frequencies for each class.

        Returns:
            Tuple of (approved frequencies, junk frequencies)
        """
        return word_frequency(corpus.approved), word_frequency(corpus.junk)

    def score(self, article: Article, corpus: LabeledCorpus) -> ScoreResult:
        """
        Score a single article.

        Args:
            article: Article to score
            corpus: Labeled approved and junk examples

        Returns:
            ScoreResult
        """
        approved_freq, junk_freq = self.frequencies(corpus)
        return self._score(article, approved_freq, junk_freq)

    def score_batch(self, articles: List[Article], corpus: LabeledCorpus) -> List[ScoreResult]:
        """
        Score multiple articles, computing the frequency tables once.

        Args:
            articles: Articles to score
            corpus: Labeled approved and junk examples

        Returns:
            One ScoreResult per article, in order
        """
        approved_freq, junk_freq = self.frequencies(corpus)
        return [self._score(article, approved_freq, junk_freq) for article in articles]

    def _score(
        self,
        article: Article,
        approved_freq: Dict[str, float],
        junk_freq: Dict[str, float],
    ) -> ScoreResult:
        words = extract_keywords(article.text(include_notes=False))
        if not words:
            return ScoreResult.neutral("No keywords extracted - neutral score")

        approved_mass = 0.0
        junk_mass = 0.0
        matched_approved: List[str] = []
        matched_junk: List[str] = []

        for word in words:
            approved_weight = approved_freq.get(word, 0.0)
            junk_weight = junk_freq.get(word, 0.0)
            approved_mass += approved_weight
            junk_mass += junk_weight
            if approved_weight > 0:
                matched_approved.append(word)
            if junk_weight > 0:
                matched_junk.append(word)

        # Junk keywords with no approved keyword at all is treated as certain junk
        if matched_junk and not matched_approved:
            quoted = ', '.join(matched_junk[:MAX_QUOTED_KEYWORDS])
            logger.debug(f"Only junk keywords in '{article.title}': {quoted}")
            return ScoreResult.from_confidence(
                0,
                ScorerKind.KEYWORDS,
                detail=f"only junk keywords ({len(matched_junk)}): {quoted}",
                force_delete=True,
            )

        total = approved_mass + junk_mass
        if total == 0:
            return ScoreResult.from_confidence(
                NEUTRAL_CONFIDENCE,
                ScorerKind.KEYWORDS,
                detail="no keywords in common with training data",
            )

        confidence = to_confidence(approved_mass / total)
        if confidence > 70:
            detail = _matched("approved", matched_approved)
        elif confidence < 30:
            detail = _matched("junk", matched_junk)
        else:
            detail = f"{len(matched_approved)} approved keywords, {len(matched_junk)} junk keywords"

        return ScoreResult.from_confidence(confidence, ScorerKind.KEYWORDS, detail=detail)


def _matched(kind: str, words: List[str]) -> str:
    detail = f"matches {len(words)} keywords from {kind} articles"
    if words:
        detail += f": {', '.join(words[:MAX_QUOTED_KEYWORDS])}"
    return detail
