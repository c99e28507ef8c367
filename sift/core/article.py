"""
Article and training example data model for Sift.
"""
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sift.utils.nlp import strip_html


class Label(IntEnum):
    """
    The user's decision on an article, used as the network target.
    """
    JUNK = 0
    APPROVED = 1


@dataclass
class Article:
    """
    Represents a candidate article as seen by the scoring engine.
    """
    title: str
    description: Optional[str] = None
    source_name: Optional[str] = None
    notes: Optional[str] = None  # Research notes extracted after approval
    link: Optional[str] = None

    def text(self, include_notes: bool = True) -> str:
        """
        Combined text used for keyword extraction.

        Args:
            include_notes: Whether to append research notes when present

        Returns:
            Title, description and (optionally) notes joined by spaces
        """
        parts = [self.title or "", self.description or ""]
        if include_notes and self.notes:
            parts.append(self.notes)
        return " ".join(parts)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Article":
        """
        Build an article from a dashboard or database record.

        Accepts both snake_case and the camelCase keys used by the web
        payloads. Markup in descriptions and notes is flattened to text.

        Args:
            data: Mapping with at least a title

        Returns:
            Article instance
        """
        return cls(
            title=data.get("title") or "",
            description=strip_html(data.get("description")),
            source_name=data.get("source_name") or data.get("sourceName"),
            notes=strip_html(data.get("notes") or data.get("research_notes")),
            link=data.get("link"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "source_name": self.source_name,
            "notes": self.notes,
            "link": self.link,
        }


@dataclass
class TrainingExample(Article):
    """
    An article together with the label the user gave it.

    The label is required.
    """
    label: Optional[Label] = None

    def __post_init__(self):
        if self.label is None:
            raise ValueError(f"Training example '{self.title}' has no label")
        self.label = Label(self.label)

    @classmethod
    def labeled(cls, article: Article, label: Label) -> "TrainingExample":
        """
        Attach a label to an existing article.

        Args:
            article: The article that was approved or junked
            label: The decision

        Returns:
            TrainingExample carrying the article fields and the label
        """
        return cls(
            title=article.title,
            description=article.description,
            source_name=article.source_name,
            notes=article.notes,
            link=article.link,
            label=Label(label),
        )

    @property
    def target(self) -> List[float]:
        """Network target vector for this example."""
        return [float(self.label)]


class LabeledCorpus:
    """
    The accumulated approved and junk decisions used for training.
    """
    def __init__(self, examples: Iterable[TrainingExample] = ()):
        self.examples: List[TrainingExample] = list(examples)

    @classmethod
    def from_sets(cls, approved: Iterable[Any], junk: Iterable[Any]) -> "LabeledCorpus":
        """
        Build a corpus from two collections of plain records.

        Each record may be an Article (or subclass) or a dict; its label is
        taken from the collection it appears in and stored on the example.

        Args:
            approved: Records the user approved
            junk: Records the user junked

        Returns:
            LabeledCorpus with explicit labels
        """
        examples = [_to_example(record, Label.APPROVED) for record in approved]
        examples.extend(_to_example(record, Label.JUNK) for record in junk)
        return cls(examples)

    @property
    def approved(self) -> List[TrainingExample]:
        return [ex for ex in self.examples if ex.label == Label.APPROVED]

    @property
    def junk(self) -> List[TrainingExample]:
        return [ex for ex in self.examples if ex.label == Label.JUNK]

    @property
    def is_empty(self) -> bool:
        return not self.examples

    def has_minimum(self, per_class: int) -> bool:
        """
        Check that both classes have at least `per_class` examples.
        """
        return len(self.approved) >= per_class and len(self.junk) >= per_class

    def __len__(self) -> int:
        return len(self.examples)

    def __iter__(self):
        return iter(self.examples)

    def __repr__(self) -> str:
        return f"LabeledCorpus(approved={len(self.approved)}, junk={len(self.junk)})"


def _to_example(record: Any, label: Label) -> TrainingExample:
    if isinstance(record, TrainingExample):
        return replace(record, label=label)
    if isinstance(record, Article):
        return TrainingExample.labeled(record, label)
    return TrainingExample.labeled(Article.from_dict(record), label)


def as_articles(records: Sequence[Any]) -> List[Article]:
    """
    Normalize a mixed list of dicts and Article objects.
    """
    return [r if isinstance(r, Article) else Article.from_dict(r) for r in records]
