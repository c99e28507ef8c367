"""
Text analysis utilities for Sift.

Keyword extraction, vocabulary building and feature vectorization shared by
the neural network and the keyword fallback scorer.
"""
import re
from collections import Counter
from typing import Dict, Iterable, List, Optional

from bs4 import BeautifulSoup

# Maximum vocabulary size for a model generation
MAX_FEATURES = 100

# Words shorter than or equal to this are never keywords
MIN_WORD_LENGTH = 3

STOPWORDS = frozenset([
    'the', 'be', 'to', 'of', 'and', 'a', 'in', 'that', 'have', 'i',
    'it', 'for', 'not', 'on', 'with', 'he', 'as', 'you', 'do', 'at',
    'this', 'but', 'his', 'by', 'from', 'they', 'we', 'say', 'her', 'she',
    'or', 'an', 'will', 'my', 'one', 'all', 'would', 'there', 'their',
    'is', 'are', 'was', 'were', 'been', 'has', 'had', 'can', 'said'
])

_NON_ALNUM = re.compile(r'[^a-z0-9\s]')
_MARKUP = re.compile(r'<[a-zA-Z/!][^>]*>')


def strip_html(text: Optional[str]) -> Optional[str]:
    """
    Flatten HTML markup to plain text.

    Feed descriptions and extracted research notes often arrive as HTML;
    tag names and attributes would otherwise leak into the vocabulary.

    Args:
        text: Possibly-HTML text

    Returns:
        Plain text, or the input unchanged when it has no markup
    """
    if not text or not _MARKUP.search(text):
        return text
    soup = BeautifulSoup(text, 'html.parser')
    for element in soup(['script', 'style']):
        element.decompose()
    return ' '.join(soup.get_text(' ').split())


def extract_keywords(text: Optional[str]) -> List[str]:
    """
    Extract keywords from text.

    Lowercases, replaces anything outside [a-z0-9] and whitespace with a
    space, splits on whitespace and drops stopwords and short tokens.

    Args:
        text: Text to analyze

    Returns:
        Keywords in order of appearance, duplicates kept
    """
    if not text:
        return []

    words = _NON_ALNUM.sub(' ', text.lower()).split()
    return [w for w in words if len(w) > MIN_WORD_LENGTH and w not in STOPWORDS]


def build_vocabulary(examples: Iterable, max_features: int = MAX_FEATURES) -> List[str]:
    """
    Build the feature vocabulary from training examples.

    Args:
        examples: Articles or training examples (title, description, notes)
        max_features: Maximum number of keywords to keep

    Returns:
        Keywords sorted by descending corpus frequency; ties keep the order
        in which the words were first seen
    """
    counts = Counter()
    for example in examples:
        counts.update(extract_keywords(example.text()))

    # most_common sorts stably, so equal counts stay in first-seen order
    return [word for word, _ in counts.most_common(max_features)]


def vectorize(article, vocabulary: List[str]) -> List[int]:
    """
    Convert an article to a binary presence vector over the vocabulary.

    Args:
        article: Article with a text() method
        vocabulary: Ordered vocabulary of the active model

    Returns:
        List of 0/1 values, one per vocabulary word
    """
    present = set(extract_keywords(article.text()))
    return [1 if word in present else 0 for word in vocabulary]


def word_frequency(examples: Iterable) -> Dict[str, float]:
    """
    Calculate normalized word frequencies across a set of articles.

    Only titles and descriptions are counted; each word's count is divided
    by the total number of keywords seen in the set.

    Args:
        examples: Articles to count

    Returns:
        Mapping of word to its share of the keyword mass (sums to 1)
    """
    counts = Counter()
    for example in examples:
        counts.update(extract_keywords(example.text(include_notes=False)))

    total = sum(counts.values())
    if total == 0:
        return {}
    return {word: count / total for word, count in counts.items()}
