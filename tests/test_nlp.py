from sift.core.article import Article
from sift.utils.nlp import (
    STOPWORDS,
    build_vocabulary,
    extract_keywords,
    strip_html,
    vectorize,
    word_frequency,
)


def test_extract_keywords_drops_short_words_stopwords_and_punctuation():
    words = extract_keywords("The NEW chip's design: faster, cheaper & there would be more!")
    assert words == ["chip", "design", "faster", "cheaper", "more"]


def test_extract_keywords_empty():
    assert extract_keywords("") == []
    assert extract_keywords(None) == []


def test_vocabulary_is_frequency_ordered_with_first_seen_ties():
    examples = [
        Article(title="alpha bravo charlie", description="bravo"),
        Article(title="delta charlie", description=None),
        Article(title="echo", notes="delta bravo"),
    ]
    # bravo=3, charlie=2, delta=2, alpha=1, echo=1
    assert build_vocabulary(examples) == ["bravo", "charlie", "delta", "alpha", "echo"]


def test_vocabulary_respects_max_features_and_filters():
    text = " ".join(f"word{i:03d}" for i in range(250)) + " the and with from said cat dog"
    vocab = build_vocabulary([Article(title=text)], max_features=100)
    assert len(vocab) == 100
    assert not STOPWORDS.intersection(vocab)
    assert all(len(word) > 3 for word in vocab)


def test_vocabulary_uses_notes():
    vocab = build_vocabulary([Article(title="Short", notes="Extracted research paragraph")])
    assert "research" in vocab
    assert "paragraph" in vocab


def test_empty_corpus_gives_empty_vocabulary():
    assert build_vocabulary([]) == []
    assert vectorize(Article(title="anything at all"), []) == []


def test_vectorize_binary_presence():
    vocab = ["chip", "lottery", "design"]
    article = Article(title="Chip chip CHIP", description="a new design")
    assert vectorize(article, vocab) == [1, 0, 1]


def test_vectorize_shape_for_empty_article():
    vocab = ["chip", "lottery", "design", "market"]
    vector = vectorize(Article(title=""), vocab)
    assert vector == [0, 0, 0, 0]
    assert len(vector) == len(vocab)


def test_word_frequency_is_normalized_and_ignores_notes():
    freq = word_frequency([
        Article(title="chip chip design", notes="ignored words here"),
        Article(title="chip market"),
    ])
    assert freq == {"chip": 0.6, "design": 0.2, "market": 0.2}
    assert "ignored" not in freq


def test_word_frequency_empty():
    assert word_frequency([]) == {}


def test_strip_html():
    assert strip_html("<p>Hello <b>world</b></p><script>var x;</script>") == "Hello world"
    assert strip_html("no markup < here") == "no markup < here"
    assert strip_html(None) is None
