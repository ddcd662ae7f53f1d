"""
Shared fixtures for LessonScribe tests.

Provides a scripted inference client that replays canned responses in call
order and records every prompt it receives, plus helpers to build pages,
manifests and model responses.
"""

import json
import os
import sys
import tempfile
from pathlib import Path

import pytest

# Keep application directories (logs, reports) out of the user's home during tests
os.environ.setdefault('LESSONSCRIBE_HOME', tempfile.mkdtemp(prefix="lessonscribe-tests-"))

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from lessonscribe.ai.inference_client import (  # noqa: E402
    ImagePayload,
    InferenceClient,
    InferenceResponse,
)
from lessonscribe.extraction.models import Manifest, Page  # noqa: E402


class ScriptedInferenceClient(InferenceClient):
    """
    Inference client that replays a script of responses.

    Each script entry is a response text (str), an InferenceResponse, or an
    exception instance to raise. Responses may also be keyed by model id to
    script several strategies at once.
    """

    def __init__(self, script=None, by_model=None, tokens=(100, 20)):
        self.script = list(script or [])
        self.by_model = {model: list(entries) for model, entries in (by_model or {}).items()}
        self.tokens = tokens
        self.calls = []

    def invoke(self, system_prompt, user_prompt, images, model_id, max_tokens, temperature):
        self.calls.append({
            'system_prompt': system_prompt,
            'user_prompt': user_prompt,
            'images': list(images),
            'model_id': model_id,
            'max_tokens': max_tokens,
            'temperature': temperature,
        })

        queue = self.by_model.get(model_id, self.script)
        if not queue:
            raise AssertionError(f"No scripted response left for model {model_id}")
        entry = queue.pop(0)

        if isinstance(entry, BaseException):
            raise entry
        if isinstance(entry, InferenceResponse):
            return entry
        return InferenceResponse(text=entry, input_tokens=self.tokens[0], output_tokens=self.tokens[1])

    @property
    def user_prompts(self):
        return [call['user_prompt'] for call in self.calls]


def make_response(
    categories=None,
    metadata=None,
    grammar=None,
    exercises=None,
    **extra,
):
    """Serialize a model response with the required top-level sections."""
    data = {
        "chapterMetadata": metadata if metadata is not None else {"title": "Na Gauna", "lesson": "2.5"},
        "translationPairs": categories if categories is not None else {},
        "grammarRules": grammar or [],
        "exercises": exercises or [],
    }
    data.update(extra)
    return json.dumps(data, ensure_ascii=False)


def make_pages(count, start=1):
    """Build count pages numbered from start with distinct dummy payloads."""
    return [
        Page(page_number=n, image_payload=ImagePayload(data=f"img-{n}"))
        for n in range(start, start + count)
    ]


@pytest.fixture
def scripted_client():
    """Factory fixture: scripted_client([...]) returns a fresh ScriptedInferenceClient."""
    def _factory(script=None, by_model=None, tokens=(100, 20)):
        return ScriptedInferenceClient(script=script, by_model=by_model, tokens=tokens)
    return _factory


@pytest.fixture
def manifest():
    """Seven-page chapter starting at page 37."""
    return Manifest(document_id="2.5", topic="Telling Time", total_pages=7, start_page=37)


@pytest.fixture
def pages():
    """Seven pages numbered 37-43."""
    return make_pages(7, start=37)
