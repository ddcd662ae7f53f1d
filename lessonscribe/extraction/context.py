"""
Cross-batch context for progressive and hybrid extraction.

ContextAccumulator grows as a progressive strategy works through its
batches, so later prompts can reuse the category names and grammar concepts
found earlier. OverviewContext is the fixed seed produced by the hybrid
overview call and shared unchanged by every detail batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from lessonscribe.config import CONTEXT_GRAMMAR_CAP, CONTEXT_SAMPLE_CAP

from .models import ExtractionFragment


def _headword(item: dict) -> str | None:
    value = item.get("fijian") if isinstance(item, dict) else None
    return value if isinstance(value, str) and value else None


def _concept(rule: dict) -> str | None:
    value = rule.get("concept") if isinstance(rule, dict) else None
    return value if isinstance(value, str) and value else None


@dataclass
class ContextAccumulator:
    """
    Running summary of what earlier batches of one strategy found.

    Owned by a single strategy run. Samples are only ever appended, and the
    title/objectives are fixed by the first batch.

    Attributes:
        title: Chapter title from the first batch
        objectives: Learning objectives from the first batch
        category_samples: Category name -> up to sample_cap headwords
        grammar_concepts: Up to grammar_cap grammar concept names
    """

    title: str = ""
    objectives: list[str] = field(default_factory=list)
    category_samples: dict[str, list[str]] = field(default_factory=dict)
    grammar_concepts: list[str] = field(default_factory=list)
    sample_cap: int = CONTEXT_SAMPLE_CAP
    grammar_cap: int = CONTEXT_GRAMMAR_CAP

    def update(self, fragment: ExtractionFragment, is_first_batch: bool) -> None:
        """
        Fold one batch's fragment into the context.

        Args:
            fragment: Extraction of the batch just processed
            is_first_batch: True only for the first batch of the run
        """
        if is_first_batch:
            metadata = fragment.metadata or {}
            title = metadata.get("title")
            self.title = title if isinstance(title, str) else ""
            objectives = metadata.get("learningObjectives")
            if isinstance(objectives, list):
                self.objectives = [str(o) for o in objectives]

        for category, items in fragment.categories.items():
            samples = self.category_samples.setdefault(category, [])
            for item in items:
                if len(samples) >= self.sample_cap:
                    break
                word = _headword(item)
                if word is not None:
                    samples.append(word)

        for rule in fragment.grammar_rules:
            if len(self.grammar_concepts) >= self.grammar_cap:
                break
            concept = _concept(rule)
            if concept is not None:
                self.grammar_concepts.append(concept)

    def summary_lines(self) -> list[str]:
        """
        Render the context-so-far block for a continuation prompt.

        Each category is shown with its capped headword samples, e.g.
        "greetings (Bula, Moce)", so the prompt grows with the caps and not
        with the document.
        """
        categories = [
            f"{name} ({', '.join(samples)})" if samples else name
            for name, samples in self.category_samples.items()
        ]
        return [
            f"- Chapter Title: {self.title}",
            f"- Learning Objectives: {', '.join(self.objectives)}",
            f"- Vocabulary categories found so far: {', '.join(categories)}",
            f"- Grammar patterns identified: {', '.join(self.grammar_concepts)}",
        ]


@dataclass(frozen=True)
class OverviewContext:
    """Static seed for hybrid detail batches."""

    title: str
    categories: tuple[str, ...] = ()
    grammar_focus: tuple[str, ...] = ()

    @classmethod
    def from_fragment(cls, fragment: ExtractionFragment, fallback_title: str) -> OverviewContext:
        """
        Build the overview seed from the overview call's fragment.

        Args:
            fragment: Fragment returned by the overview call
            fallback_title: Used when the overview found no title (the manifest topic)
        """
        title = (fragment.metadata or {}).get("title")
        concepts = [c for c in (_concept(r) for r in fragment.grammar_rules) if c]
        return cls(
            title=title if isinstance(title, str) and title else fallback_title,
            categories=tuple(fragment.categories),
            grammar_focus=tuple(concepts),
        )

    def summary_lines(self) -> list[str]:
        grammar = ", ".join(self.grammar_focus) or "various"
        return [
            f"- Title: {self.title}",
            f"- Categories: {', '.join(self.categories)}",
            f"- Grammar focus: {grammar}",
        ]
