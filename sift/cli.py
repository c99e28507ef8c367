"""
Command-line interface for Sift.
"""
import argparse
import json
import logging
import sqlite3
import sys
from functools import partial
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from sift.config import get_config
from sift.core.article import Article, LabeledCorpus, as_articles
from sift.core.errors import SiftError
from sift.core.scorer import METHODS, ConfidenceScorer
from sift.core.store import ModelStore
from sift.core.trainer import INCREMENTAL_EPOCHS, MIN_EXAMPLES_PER_CLASS
from sift.formatters.markdown import MarkdownFormatter

logger = logging.getLogger(__name__)

TEST_ARTICLE = Article(
    title="Test Article for Neural Network",
    description="This is a test to verify the neural network is working correctly",
    source_name="Test Source",
)


def setup_logging(verbose: bool = False) -> None:
    """
    Configure logging to stderr and, when logging.file is set, to a file.

    Args:
        verbose: Log at DEBUG instead of the configured level
    """
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    log_file = get_config('logging.file')
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    level = logging.DEBUG if verbose else getattr(
        logging, str(get_config('logging.level', 'INFO')).upper(), logging.INFO
    )
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )


def parse_args(argv: Optional[List[str]] = None):
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(description="Sift - article triage confidence engine")
    parser.add_argument("--store", help="Path to the model database (overrides store.path)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    score = subparsers.add_parser("score", help="Score candidate articles")
    score.add_argument("articles", help="JSON file with articles to score")
    score.add_argument("--approved", help="JSON file with approved articles")
    score.add_argument("--junk", help="JSON file with junk articles")
    score.add_argument("--method", choices=METHODS, help="Scorer to use")
    score.add_argument("--output", help="Write results as JSON to this file instead of stdout")
    score.add_argument("--report", help="Write a Markdown triage report to this file")

    retrain = subparsers.add_parser("retrain", help="Retrain the model from scratch")
    retrain.add_argument("--approved", required=True, help="JSON file with approved articles")
    retrain.add_argument("--junk", required=True, help="JSON file with junk articles")

    train = subparsers.add_parser("train", help="Continue training on newly labeled articles")
    train.add_argument("--new-approved", help="JSON file with newly approved articles")
    train.add_argument("--new-junk", help="JSON file with newly junked articles")
    train.add_argument("--epochs", type=int, default=INCREMENTAL_EPOCHS, help="Training passes")
    train.add_argument("--approved", help="All approved articles, used if no model exists yet")
    train.add_argument("--junk", help="All junk articles, used if no model exists yet")

    models = subparsers.add_parser("models", help="List stored model generations")
    models.add_argument("--limit", type=int, default=20, help="Maximum number of models to list")

    test = subparsers.add_parser("test", help="Score a synthetic article to check the model works")
    test.add_argument("--approved", required=True, help="JSON file with approved articles")
    test.add_argument("--junk", required=True, help="JSON file with junk articles")

    return parser.parse_args(argv)


def load_records(path: Optional[str]) -> List[Dict[str, Any]]:
    """
    Load article records from a JSON file.

    The file may hold a list of objects or an object with an "articles" list.

    Args:
        path: Path to the JSON file, or None

    Returns:
        List of article dicts (empty when path is None)
    """
    if not path:
        return []
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("articles", [])
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a list of articles")
    return data


def load_corpus(approved_path: Optional[str], junk_path: Optional[str]) -> LabeledCorpus:
    return LabeledCorpus.from_sets(load_records(approved_path), load_records(junk_path))


def write_output(payload: Any, path: Optional[str]) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if path:
        Path(path).write_text(text + "\n", encoding="utf-8")
        logger.info(f"Wrote results to {path}")
    else:
        print(text)


def cmd_score(args, store: ModelStore) -> int:
    articles = as_articles(load_records(args.articles))
    corpus = load_corpus(args.approved, args.junk)
    logger.info(f"Scoring {len(articles)} articles ({corpus!r})")

    scorer = ConfidenceScorer(store=store, method=args.method)
    results = scorer.score_batch(articles, corpus)

    counts: Dict[str, int] = {}
    for result in results:
        counts[result.action.value] = counts.get(result.action.value, 0) + 1
    logger.info(
        f"Scored {len(results)} articles, auto-flagged {counts.get('flag', 0)}, "
        f"auto-junked {counts.get('junk', 0)}, auto-deleted {counts.get('delete', 0)}"
    )

    payload = {
        "scored": len(results),
        "counts": counts,
        "articles": [
            {"title": article.title, "link": article.link, **result.to_dict()}
            for article, result in zip(articles, results)
        ],
    }
    write_output(payload, args.output)

    if args.report:
        report = MarkdownFormatter().format_report(articles, results)
        Path(args.report).write_text(report, encoding="utf-8")
        logger.info(f"Generated Markdown report: {args.report}")
    return 0


def cmd_retrain(args, store: ModelStore) -> int:
    logger.info("Manual retrain requested")
    corpus = load_corpus(args.approved, args.junk)
    success = ConfidenceScorer(store=store).full_retrain(corpus)
    if success:
        logger.info("Neural network retrained successfully with all training data")
        return 0
    logger.error("Retraining failed - insufficient training data or error occurred")
    return 1


def cmd_train(args, store: ModelStore) -> int:
    new_examples = load_corpus(args.new_approved, args.new_junk).examples
    history = None
    if args.approved or args.junk:
        history = partial(load_corpus, args.approved, args.junk)

    scorer = ConfidenceScorer(store=store, history=history)
    return 0 if scorer.incremental_train(new_examples, args.epochs) else 1


def cmd_models(args, store: ModelStore) -> int:
    write_output(store.history(args.limit), None)
    return 0


def cmd_test(args, store: ModelStore) -> int:
    corpus = load_corpus(args.approved, args.junk)
    logger.info(f"Fetched {len(corpus.approved)} approved, {len(corpus.junk)} junk")

    payload: Dict[str, Any] = {
        "training_data": {"approved": len(corpus.approved), "junk": len(corpus.junk)},
    }
    if not corpus.has_minimum(MIN_EXAMPLES_PER_CLASS):
        payload.update(
            success=False,
            message="Insufficient training data",
            required={"approved": MIN_EXAMPLES_PER_CLASS, "junk": MIN_EXAMPLES_PER_CLASS},
        )
        write_output(payload, None)
        return 1

    result = ConfidenceScorer(store=store, method="network").score_batch([TEST_ARTICLE], corpus)[0]
    payload.update(
        success=True,
        message="Neural network is working!",
        test_result=result.to_dict(),
        sample_approved=[ex.title for ex in corpus.approved[:3]],
        sample_junk=[ex.title for ex in corpus.junk[:3]],
    )
    write_output(payload, None)
    return 0


COMMANDS = {
    "score": cmd_score,
    "retrain": cmd_retrain,
    "train": cmd_train,
    "models": cmd_models,
    "test": cmd_test,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the command-line script.
    """
    # Explicitly reload environment variables from .env file
    load_dotenv(override=True)
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        store = ModelStore(args.store) if args.store else ModelStore()
        return COMMANDS[args.command](args, store)
    except KeyboardInterrupt:
        logger.info("Process interrupted by user")
        return 1
    except SiftError as e:
        logger.error(f"{e.code}: {e}")
        return 1
    except (OSError, ValueError, sqlite3.Error) as e:
        logger.error(f"An error occurred: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
