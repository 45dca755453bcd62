# Generator service - writes, refines and explains cover letters

from generator.cover_letter import CoverLetterWriter, detect_language

__all__ = [
    "CoverLetterWriter",
    "detect_language",
]
