"""
Merge Engine for LessonScribe.

Combines the fragments of one strategy run into a single MergedExtraction.
This is the REDUCE step.

Key behaviours:
- Metadata comes from the first fragment; totalPages and pageRange always
  come from the manifest
- Category names that differ only in case, spacing or punctuation merge
  under the first spelling seen ("Greetings", "greetings", "Greet-ings")
- Vocabulary items are deduplicated per category by headword + translation
- Grammar rules, exercises, notes, dialogues and visual aids are
  concatenated in fragment order without deduplication
"""

import re

from lessonscribe.config import PRIMARY_TERM_FIELDS, SECONDARY_TERM_FIELDS
from lessonscribe.logging_config import debug_log

from .errors import MissingInputError
from .models import ExtractionFragment, Manifest, MergedExtraction


_NON_LETTERS = re.compile(r"[^a-z]")


def normalize_category(name: str) -> str:
    """Lowercase a category name and drop every character outside a-z."""
    return _NON_LETTERS.sub("", name.lower())


def _first_truthy(item: dict, fields: tuple[str, ...]) -> str:
    for name in fields:
        value = item.get(name)
        if value:
            return str(value)
    return ""


def dedup_key(item: dict) -> str:
    """
    Identity key for a vocabulary item.

    Primary part: first non-empty of fijian, concept, id.
    Secondary part: first non-empty of english, explanation.
    Values are used verbatim; missing parts become "".

    Example:
        dedup_key({"fijian": "Bula", "english": "Hello"})  # "Bula::Hello"
    """
    return f"{_first_truthy(item, PRIMARY_TERM_FIELDS)}::{_first_truthy(item, SECONDARY_TERM_FIELDS)}"


def deduplicate_items(items: list[dict]) -> list[dict]:
    """Drop items whose dedup key was already seen, keeping first occurrences in order."""
    seen = set()
    unique = []
    for item in items:
        key = dedup_key(item)
        if key not in seen:
            seen.add(key)
            unique.append(item)
    return unique


class MergeEngine:
    """
    Merges strategy fragments into one canonical extraction.

    Stateless between calls: the category map built by merge() lives only
    for that call.

    Example:
        engine = MergeEngine()
        merged = engine.merge(run.fragments, manifest)
        print(list(merged.categories))
    """

    def merge(self, fragments: list[ExtractionFragment], manifest: Manifest) -> MergedExtraction:
        """
        Merge fragments in order.

        Args:
            fragments: Fragments in merge order
            manifest: Source of totalPages and pageRange

        Returns:
            MergedExtraction with canonical, deduplicated categories

        Raises:
            MissingInputError: If fragments is empty
        """
        if not fragments:
            raise MissingInputError("Cannot merge an empty list of fragments")

        metadata = dict(fragments[0].metadata)
        metadata["totalPages"] = manifest.total_pages
        metadata["pageRange"] = manifest.page_range
        merged = MergedExtraction(metadata=metadata)

        canonical = self._build_category_map(fragments)

        raw_count = 0
        for fragment in fragments:
            for name, items in fragment.categories.items():
                label = canonical[normalize_category(name)]
                merged.categories.setdefault(label, []).extend(items)
                raw_count += len(items)

            merged.grammar_rules.extend(fragment.grammar_rules)
            merged.exercises.extend(fragment.exercises)
            merged.cultural_notes.extend(fragment.cultural_notes)
            merged.dialogues.extend(fragment.dialogues)
            merged.visual_aids.extend(fragment.visual_aids)

        for label, items in merged.categories.items():
            merged.categories[label] = deduplicate_items(items)

        kept = sum(len(items) for items in merged.categories.values())
        debug_log(
            f"[MergeEngine] {len(fragments)} fragments -> {len(merged.categories)} categories, "
            f"{kept} items ({raw_count - kept} duplicates removed)"
        )
        return merged

    @staticmethod
    def _build_category_map(fragments: list[ExtractionFragment]) -> dict[str, str]:
        """Map each normalized category key to the first spelling seen."""
        canonical: dict[str, str] = {}
        for fragment in fragments:
            for name in fragment.categories:
                canonical.setdefault(normalize_category(name), name)
        return canonical
