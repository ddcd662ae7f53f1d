"""
Content loading for LessonScribe.

Reads a chapter directory (manifest.json plus page images) into the
Manifest and Page values the extraction engine consumes.
"""

from .loader import load_chapter, load_manifest, load_pages

__all__ = ['load_chapter', 'load_manifest', 'load_pages']
