"""
Chapter directory loader.

A chapter directory holds a manifest.json and one image per page:

    manifest.json
    fiji_ch02_5_p037_telling_time.jpg
    fiji_ch02_5_p037_telling_time.txt   (optional OCR text)
    fiji_ch02_5_p038_telling_time.jpg

The page number comes from the "_p<digits>_" token in the filename (0 when
the token is missing). Pages are returned sorted by page number.
"""

import base64
import json
import mimetypes
import re
from pathlib import Path

from lessonscribe.ai.inference_client import ImagePayload
from lessonscribe.extraction.errors import MissingInputError
from lessonscribe.extraction.models import Manifest, Page
from lessonscribe.logging_config import debug_log

MANIFEST_FILENAME = "manifest.json"
IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".webp", ".gif"}

_PAGE_TOKEN = re.compile(r"_p(\d+)_")


def page_number_from_filename(filename: str) -> int:
    """Return the page number encoded as _p<digits>_ in a filename, or 0."""
    match = _PAGE_TOKEN.search(filename)
    return int(match.group(1)) if match else 0


def load_manifest(path: Path | str) -> Manifest:
    """
    Read a chapter manifest.

    Args:
        path: manifest.json, or the chapter directory containing it

    Returns:
        Manifest built from the chapter, topic, startPage, totalPages and files fields

    Raises:
        FileNotFoundError: If the manifest does not exist
        MissingInputError: If required fields are missing or invalid
    """
    path = Path(path)
    if path.is_dir():
        path = path / MANIFEST_FILENAME

    with open(path, encoding='utf-8') as f:
        data = json.load(f)

    if not isinstance(data, dict) or 'chapter' not in data:
        raise MissingInputError(f"Manifest {path} has no 'chapter' field")

    try:
        total_pages = int(data.get('totalPages', len(data.get('files') or [])))
        start_page = int(data.get('startPage', 1))
    except (TypeError, ValueError) as e:
        raise MissingInputError(f"Manifest {path} has invalid page fields: {e}") from e

    manifest = Manifest(
        document_id=str(data['chapter']),
        topic=str(data.get('topic', '')),
        total_pages=total_pages,
        start_page=start_page,
        files=tuple(str(name) for name in data.get('files') or ()),
    )
    debug_log(
        f"[ContentLoader] Manifest for chapter {manifest.document_id}: "
        f"{manifest.total_pages} pages ({manifest.page_range})"
    )
    return manifest


def _page_files(manifest: Manifest, directory: Path) -> list[Path]:
    """Image files named by the manifest, or every image in the directory when it names none."""
    if manifest.files:
        return [
            directory / name
            for name in manifest.files
            if Path(name).suffix.lower() not in {".json", ".txt"}
        ]
    return sorted(p for p in directory.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES)


def load_pages(manifest: Manifest, directory: Path | str) -> list[Page]:
    """
    Load and encode every page image of a chapter.

    Args:
        manifest: Manifest whose files list names the page images
        directory: Directory containing the files

    Returns:
        Pages sorted by page number

    Raises:
        FileNotFoundError: If a listed image is missing
    """
    directory = Path(directory)
    pages = []

    for image_path in _page_files(manifest, directory):
        encoded = base64.b64encode(image_path.read_bytes()).decode('ascii')
        media_type = mimetypes.guess_type(image_path.name)[0] or "image/jpeg"

        text_path = image_path.with_suffix(".txt")
        raw_text = text_path.read_text(encoding='utf-8') if text_path.is_file() else None

        pages.append(Page(
            page_number=page_number_from_filename(image_path.name),
            image_payload=ImagePayload(data=encoded, media_type=media_type),
            raw_text=raw_text,
            filename=image_path.name,
        ))

    pages.sort(key=lambda p: p.page_number)
    debug_log(f"[ContentLoader] Loaded {len(pages)} pages from {directory}")
    return pages


def load_chapter(directory: Path | str) -> tuple[Manifest, list[Page]]:
    """Load the manifest and pages of a chapter directory."""
    manifest = load_manifest(directory)
    return manifest, load_pages(manifest, directory)
