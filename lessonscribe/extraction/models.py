"""
Data model for multi-strategy lesson extraction.

Manifest, Page, Strategy and ExtractionFragment are immutable values. The
only mutable state in a strategy run lives in the ContextAccumulator and in
the merge accumulator, both owned by a single run.

Items inside fragments (vocabulary pairs, grammar rules, exercises, ...) are
kept as the plain dicts the model returned. Their exact shape is the model's
business; the engine only reads the headword/translation fields and `page`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from lessonscribe.ai.inference_client import ImagePayload


class ContextMode(str, Enum):
    """How context is carried between the inference calls of one strategy."""

    FULL = "full"
    PROGRESSIVE = "progressive"
    HYBRID = "hybrid-overview"

    @classmethod
    def parse(cls, value: str | ContextMode) -> ContextMode:
        """
        Parse a context mode name from configuration.

        Accepts "summary" as the older name of the hybrid mode.

        Raises:
            ValueError: If the name is not a known mode
        """
        if isinstance(value, ContextMode):
            return value
        name = str(value).strip().lower()
        if name == "summary":
            return cls.HYBRID
        return cls(name)


@dataclass(frozen=True)
class Page:
    """
    One scanned page of a lesson.

    Attributes:
        page_number: 1-based page number within the source book
        image_payload: Encoded page image, passed through to the model untouched
        raw_text: Optional OCR text for the page
        filename: Source filename, when loaded from disk
    """

    page_number: int
    image_payload: ImagePayload
    raw_text: str | None = None
    filename: str | None = None


@dataclass(frozen=True)
class Manifest:
    """
    Identifies a document and its extent.

    The manifest is authoritative for page count and page range; merged
    extractions always take totalPages/pageRange from here.
    """

    document_id: str
    topic: str
    total_pages: int
    start_page: int = 1
    files: tuple[str, ...] = ()

    @property
    def end_page(self) -> int:
        return self.start_page + self.total_pages - 1

    @property
    def page_range(self) -> str:
        return f"{self.start_page}-{self.end_page}"


@dataclass(frozen=True)
class Strategy:
    """
    One extraction strategy under comparison.

    Attributes:
        name: Display name used in logs and reports
        model: Model identifier passed to the inference client
        batch_size: Pages per inference call (None = all pages in one call)
        context_mode: How context flows between calls
    """

    name: str
    model: str
    batch_size: int | None
    context_mode: ContextMode = ContextMode.FULL

    def effective_batch_size(self, page_count: int) -> int:
        """Batch size for a document of page_count pages (None means all of them)."""
        if self.batch_size is None:
            return max(page_count, 1)
        return self.batch_size


@dataclass(frozen=True)
class ExtractionFragment:
    """
    Structured output of one inference call over one batch of pages.

    Attributes:
        metadata: chapterMetadata block (title, subtitle, learningObjectives, lesson, ...)
        categories: Category name as emitted by the model -> ordered vocabulary items
        grammar_rules: Grammar rule dicts in page order
        exercises: Exercise dicts
        cultural_notes: Cultural note dicts
        dialogues: Dialogue dicts
        visual_aids: Visual aid dicts
        raw: The parsed JSON object the fragment was built from
    """

    metadata: dict[str, Any]
    categories: dict[str, list[dict[str, Any]]]
    grammar_rules: list[dict[str, Any]] = field(default_factory=list)
    exercises: list[dict[str, Any]] = field(default_factory=list)
    cultural_notes: list[dict[str, Any]] = field(default_factory=list)
    dialogues: list[dict[str, Any]] = field(default_factory=list)
    visual_aids: list[dict[str, Any]] = field(default_factory=list)
    raw: dict[str, Any] | None = field(default=None, compare=False, repr=False)

    @property
    def item_count(self) -> int:
        """Number of vocabulary items across all categories."""
        return sum(len(items) for items in self.categories.values())


@dataclass(frozen=True)
class BatchExtraction:
    """A fragment plus the token usage reported for the call that produced it."""

    fragment: ExtractionFragment
    input_tokens: int = 0
    output_tokens: int = 0
    pages: tuple[int, ...] = ()

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class MergedExtraction:
    """
    Canonical document produced by merging every fragment of one strategy.

    Category keys are canonical labels; every category list is deduplicated.
    """

    metadata: dict[str, Any] = field(default_factory=dict)
    categories: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    grammar_rules: list[dict[str, Any]] = field(default_factory=list)
    exercises: list[dict[str, Any]] = field(default_factory=list)
    cultural_notes: list[dict[str, Any]] = field(default_factory=list)
    dialogues: list[dict[str, Any]] = field(default_factory=list)
    visual_aids: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON shape the model is asked to produce."""
        return {
            "chapterMetadata": dict(self.metadata),
            "translationPairs": {name: list(items) for name, items in self.categories.items()},
            "grammarRules": list(self.grammar_rules),
            "exercises": list(self.exercises),
            "culturalNotes": list(self.cultural_notes),
            "dialogues": list(self.dialogues),
            "visualAids": list(self.visual_aids),
        }
