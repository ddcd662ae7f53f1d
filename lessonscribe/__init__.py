"""
LessonScribe: multi-strategy extraction of language lessons from scanned pages.

Entry point:
    from lessonscribe.extraction import compare_strategies
"""

__version__ = "0.1.0"
