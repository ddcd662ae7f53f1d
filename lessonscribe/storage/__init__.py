"""
Artifact storage for LessonScribe.

    ArtifactStore - Interface used to persist comparison reports
    LocalArtifactStore - Writes artifacts under a local directory
"""

from .artifact_store import ArtifactStore, LocalArtifactStore

__all__ = ['ArtifactStore', 'LocalArtifactStore']
