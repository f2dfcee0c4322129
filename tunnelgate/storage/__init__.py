"""
Durable storage primitives
"""

from .sectionfile import Entry, SectionFile, SectionFileError

__all__ = [
    'Entry',
    'SectionFile',
    'SectionFileError'
]
