"""
Batch Extractor for LessonScribe.

Runs one inference call over one batch of page images and turns the raw
response into an ExtractionFragment. This is the MAP step: each call is
independent apart from the context passed in its prompt, and the fragments
are later combined by the MergeEngine (REDUCE step).

Response handling:
- A leading/trailing ``` fence (optionally tagged json) is stripped
- The text must hold one JSON object; an outermost {...} span is tried
  once for chatty models that wrap the object in prose
- chapterMetadata and translationPairs must both be objects
- Anything else raises UnparseableExtraction; calls are never retried
"""

from __future__ import annotations

import json
import re
from typing import Any

from lessonscribe.ai.inference_client import InferenceClient
from lessonscribe.config import (
    BATCH_MAX_TOKENS,
    EXTRACTION_TEMPERATURE,
    FULL_MAX_TOKENS,
    OVERVIEW_MAX_TOKENS,
)
from lessonscribe.logging_config import debug_log

from . import prompts
from .context import ContextAccumulator, OverviewContext
from .errors import MissingInputError, UnparseableExtraction
from .models import BatchExtraction, ExtractionFragment, Manifest, Page, Strategy


# Call phases; each picks a prompt template and a token limit
PHASE_FULL = "full"
PHASE_PROGRESSIVE = "progressive"
PHASE_OVERVIEW = "overview"
PHASE_DETAIL = "detail"

PHASE_MAX_TOKENS = {
    PHASE_FULL: FULL_MAX_TOKENS,
    PHASE_PROGRESSIVE: BATCH_MAX_TOKENS,
    PHASE_OVERVIEW: OVERVIEW_MAX_TOKENS,
    PHASE_DETAIL: BATCH_MAX_TOKENS,
}

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")

# Optional list sections: JSON key -> ExtractionFragment field
_LIST_SECTIONS = {
    "grammarRules": "grammar_rules",
    "exercises": "exercises",
    "culturalNotes": "cultural_notes",
    "dialogues": "dialogues",
    "visualAids": "visual_aids",
}


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ``` or ```json fence, if present."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_OPEN.sub("", cleaned, count=1)
        cleaned = _FENCE_CLOSE.sub("", cleaned, count=1)
    return cleaned.strip()


def parse_response_text(text: str) -> dict[str, Any]:
    """
    Parse a model response into a JSON object.

    Args:
        text: Raw response text

    Returns:
        The parsed JSON object

    Raises:
        UnparseableExtraction: If no JSON object can be recovered
    """
    cleaned = strip_code_fence(text or "")
    if not cleaned:
        raise UnparseableExtraction("Empty response", text or "")

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        # Chatty models: try the outermost {...} span once
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start == -1 or end <= start:
            raise UnparseableExtraction("Response is not JSON", text) from None
        try:
            parsed = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError as e:
            raise UnparseableExtraction(f"Invalid JSON: {e.msg}", text) from None

    if not isinstance(parsed, dict):
        raise UnparseableExtraction(
            f"Expected a JSON object, got {type(parsed).__name__}", text
        )
    return parsed


def build_fragment(data: dict[str, Any], response_text: str = "") -> ExtractionFragment:
    """
    Validate a parsed response and convert it to an ExtractionFragment.

    Category lists that are not lists are dropped, as are items that are
    not objects. Missing optional sections become empty lists.

    Raises:
        UnparseableExtraction: If a required section is missing or malformed
    """
    metadata = data.get("chapterMetadata")
    if not isinstance(metadata, dict):
        raise UnparseableExtraction("Missing or invalid 'chapterMetadata' object", response_text)

    pairs = data.get("translationPairs")
    if not isinstance(pairs, dict):
        raise UnparseableExtraction("Missing or invalid 'translationPairs' object", response_text)

    categories = {
        str(name): [item for item in items if isinstance(item, dict)]
        for name, items in pairs.items()
        if isinstance(items, list)
    }

    sections = {}
    for key, attr in _LIST_SECTIONS.items():
        value = data.get(key)
        sections[attr] = [v for v in value if isinstance(v, dict)] if isinstance(value, list) else []

    return ExtractionFragment(metadata=dict(metadata), categories=categories, raw=data, **sections)


class BatchExtractor:
    """
    Extracts one fragment per inference call.

    Example:
        extractor = BatchExtractor(client)
        result = extractor.extract(pages, strategy, manifest=manifest, phase=PHASE_FULL)
        print(result.fragment.item_count, result.total_tokens)
    """

    def __init__(self, client: InferenceClient, temperature: float = EXTRACTION_TEMPERATURE):
        self.client = client
        self.temperature = temperature

    def build_prompt(
        self,
        pages: list[Page],
        manifest: Manifest,
        phase: str,
        context: ContextAccumulator | OverviewContext | None = None,
        page_count: int | None = None,
    ) -> str:
        """Select and fill the user prompt template for a phase."""
        if page_count is None:
            page_count = len(pages)

        if phase == PHASE_FULL:
            return prompts.full_prompt(manifest, page_count)
        if phase == PHASE_PROGRESSIVE:
            return prompts.progressive_prompt(manifest, pages, context)
        if phase == PHASE_OVERVIEW:
            return prompts.overview_prompt(manifest, pages, page_count)
        if phase == PHASE_DETAIL:
            if not isinstance(context, OverviewContext):
                raise MissingInputError("Detail batches need an overview context")
            return prompts.detail_prompt(context, pages)
        raise ValueError(f"Unknown extraction phase: {phase}")

    def extract(
        self,
        pages: list[Page],
        strategy: Strategy,
        *,
        manifest: Manifest,
        phase: str,
        context: ContextAccumulator | OverviewContext | None = None,
        page_count: int | None = None,
    ) -> BatchExtraction:
        """
        Run one inference call over a batch of pages.

        Args:
            pages: Pages in this batch, in order
            strategy: Strategy supplying the model id
            manifest: Document being extracted
            phase: One of the PHASE_* constants
            context: Progressive accumulator or hybrid overview, if any
            page_count: Document page count for prompts (defaults to len(pages))

        Returns:
            BatchExtraction with the fragment and token usage

        Raises:
            MissingInputError: If pages is empty
            UnparseableExtraction: If the response cannot be used
            InferenceRequestError: If the inference call fails
        """
        if not pages:
            raise MissingInputError("Cannot extract from an empty batch")

        user_prompt = self.build_prompt(pages, manifest, phase, context, page_count)
        max_tokens = PHASE_MAX_TOKENS[phase]
        page_numbers = tuple(p.page_number for p in pages)

        debug_log(
            f"[BatchExtractor] {strategy.name}: {phase} call, pages {list(page_numbers)}, "
            f"model {strategy.model}, max_tokens {max_tokens}"
        )

        response = self.client.invoke(
            system_prompt=prompts.SYSTEM_PROMPT,
            user_prompt=user_prompt,
            images=[p.image_payload for p in pages],
            model_id=strategy.model,
            max_tokens=max_tokens,
            temperature=self.temperature,
        )

        data = parse_response_text(response.text)
        fragment = build_fragment(data, response.text)

        debug_log(
            f"[BatchExtractor] {strategy.name}: {len(fragment.categories)} categories, "
            f"{fragment.item_count} items, {response.total_tokens} tokens"
        )

        return BatchExtraction(
            fragment=fragment,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            pages=page_numbers,
        )
