"""
Prompt templates for lesson extraction.

Every call of every strategy shares SYSTEM_PROMPT, which carries the JSON
structure the model must return. The user prompt varies with the strategy
and the batch position.
"""

from .context import ContextAccumulator, OverviewContext
from .models import Manifest, Page


# JSON structure every extraction call must return
EXTRACTION_SCHEMA = """{
  "chapterMetadata": {
    "lesson": "Lesson number",
    "title": "Main Fijian title from the pages",
    "subtitle": "English subtitle if present",
    "pageRange": "first-last page numbers",
    "totalPages": 0,
    "learningObjectives": ["objective 1", "objective 2"],
    "prerequisiteLessons": ["2.4", "2.3"]
  },
  "translationPairs": {
    "category_name": [
      {
        "fijian": "Fijian word/phrase",
        "english": "English translation",
        "type": "noun/verb/phrase/etc",
        "page": 1,
        "usageNotes": "optional context",
        "pronunciation": "if provided"
      }
    ]
  },
  "grammarRules": [
    {
      "concept": "Grammar concept name",
      "explanation": "How it works",
      "pattern": "Pattern formula if applicable",
      "examples": [{"fijian": "example", "english": "translation", "breakdown": "optional"}],
      "page": 1
    }
  ],
  "exercises": [
    {"type": "listening/fill_in_blank/practice", "instruction": "What students should do", "content": "Exercise details", "page": 1}
  ],
  "culturalNotes": [{"note": "Cultural information", "pages": [1]}],
  "dialogues": [{"id": "2.5.1", "topic": "Conversation topic", "participants": ["A", "B"], "page": 1}],
  "visualAids": [{"type": "clock_faces/images/charts", "description": "What it shows", "pages": [1]}]
}"""


SYSTEM_PROMPT = f"""You are analyzing pages from a Fijian language learning manual.

CRITICAL INSTRUCTIONS:
1. Extract EVERY SINGLE Fijian word, phrase, or sentence that has an English translation
2. Look at ALL tables, lists, example sentences, exercises, and dialogues
3. Do NOT skip any content - even if it seems repetitive
4. Check the entire page including margins, footnotes, and captions
5. Maintain consistency in category names across batches

Return the extraction as JSON with this exact structure:

{EXTRACTION_SCHEMA}

RULES:
- Respond ONLY with valid JSON
- Do not include any explanation, markdown, or code fences
- Group vocabulary by logical categories (numbers, time expressions, days, months, etc.)
- Include page numbers for everything
- If a section has no content on these pages, use an empty list or object"""


def _page_list(pages: list[Page]) -> str:
    return ", ".join(str(p.page_number) for p in pages)


def full_prompt(manifest: Manifest, page_count: int) -> str:
    """Prompt for a single call over the whole document."""
    return f"""Chapter: {manifest.document_id}
Topic: {manifest.topic}
Total pages: {page_count}

Extract ALL content following the JSON structure. Be thorough and complete."""


def progressive_prompt(
    manifest: Manifest,
    batch: list[Page],
    context: ContextAccumulator | None,
) -> str:
    """
    Prompt for one batch of a progressive strategy.

    Args:
        manifest: Document being extracted
        batch: Pages in this batch
        context: Accumulated context, or None for the first batch
    """
    if context is None:
        opening = f"This is the FIRST batch of pages from Chapter {manifest.document_id}: {manifest.topic}"
        body = (
            "Please extract everything from these pages, paying special attention "
            "to the chapter title and learning objectives."
        )
    else:
        opening = f"This is a CONTINUATION of Chapter {manifest.document_id}: {manifest.topic}"
        body = "\n".join(
            ["Context from previous pages:"]
            + context.summary_lines()
            + [
                "",
                "Please continue extracting from where we left off. Make sure to:",
                "1. Use consistent category names with what's been found",
                "2. Note any references to previous pages",
                "3. Continue numbering exercises/dialogues sequentially",
            ]
        )

    return f"""{opening}

{body}

Pages in this batch: {_page_list(batch)}
Total chapter pages: {manifest.total_pages}"""


def overview_prompt(manifest: Manifest, sample_pages: list[Page], page_count: int) -> str:
    """Prompt for the hybrid overview call over sample pages."""
    return f"""Analyze these sample pages from Chapter {manifest.document_id} to understand the overall structure.
Pages shown: {_page_list(sample_pages)} (out of {page_count} total)

Please identify:
1. Chapter title and learning objectives
2. Main vocabulary categories/themes
3. Grammar concepts covered
4. Types of exercises present
5. Overall teaching approach

This overview will guide detailed extraction of all pages."""


def detail_prompt(overview: OverviewContext, batch: list[Page]) -> str:
    """Prompt for one hybrid detail batch, seeded with the static overview."""
    lines = "\n".join(overview.summary_lines())
    return f"""Based on the chapter overview:
{lines}

Now extract ALL content from pages {_page_list(batch)}.
Be thorough - extract every translation pair, example, and exercise.
Use the same category names as identified in the overview."""
