"""Ordered phrase list with add/update/delete/merge, search and pagination"""

import math
import logging
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from phrasebook_core.schemas import Phrase

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


class DuplicatePhraseError(ValueError):
    """Another phrase already has the same korean + english identity"""


class PhraseNotFoundError(LookupError):
    """No phrase at the requested position"""


class PhraseCatalog:
    """Phrases in display order, unique by id"""

    def __init__(self, phrases: Optional[Iterable[Phrase]] = None):
        self.phrases: List[Phrase] = list(phrases or [])

    def __len__(self) -> int:
        return len(self.phrases)

    def __iter__(self):
        return iter(self.phrases)

    @property
    def ids(self) -> List[str]:
        return [phrase.id for phrase in self.phrases]

    def get(self, index: int) -> Phrase:
        if index < 0 or index >= len(self.phrases):
            raise PhraseNotFoundError(f"Phrase not found: {index}")
        return self.phrases[index]

    def find(self, phrase_id: str) -> Optional[int]:
        for idx, phrase in enumerate(self.phrases):
            if phrase.id == phrase_id:
                return idx
        return None

    def add(self, korean: str, english: str, audio: str = "") -> Phrase:
        """
        Insert a phrase at the top of the list

        Raises:
            DuplicatePhraseError: If the phrase id already exists
            pydantic.ValidationError: If korean or english is empty
        """
        phrase = Phrase(korean=korean, english=english, audio=audio)
        if self.find(phrase.id) is not None:
            raise DuplicatePhraseError("Phrase already exists")
        self.phrases.insert(0, phrase)
        return phrase

    def update(self, index: int, korean: str, english: str, audio: str = "") -> Tuple[Phrase, Phrase]:
        """
        Replace the phrase at index

        Returns:
            Tuple of (previous phrase, updated phrase); ids differ when
            the korean/english identity changed

        Raises:
            PhraseNotFoundError: If index is out of range
            DuplicatePhraseError: If the new id belongs to another phrase
        """
        previous = self.get(index)
        updated = Phrase(korean=korean, english=english, audio=audio)

        existing = self.find(updated.id)
        if existing is not None and existing != index:
            raise DuplicatePhraseError("Another entry already has this Korean+English")

        self.phrases[index] = updated
        return previous, updated

    def delete(self, index: int) -> Phrase:
        """Remove and return the phrase at index"""
        self.get(index)
        return self.phrases.pop(index)

    def merge(self, incoming: Iterable[Phrase]) -> int:
        """
        Append phrases whose id is not yet present

        Returns:
            Number of phrases added
        """
        seen = set(self.ids)
        added = 0
        for phrase in incoming:
            if phrase.id in seen:
                continue
            seen.add(phrase.id)
            self.phrases.append(phrase)
            added += 1

        logger.info(f"Merged {added} new phrases ({len(self.phrases)} total)")
        return added

    def filter(
        self,
        progress: Optional[Mapping[Any, Any]] = None,
        query: str = "",
        show_studied: bool = True
    ) -> List[Phrase]:
        """
        Phrases matching a case-insensitive substring, optionally hiding studied ones
        """
        progress = progress or {}
        q = (query or "").strip().lower()
        rows = []
        for phrase in self.phrases:
            if not show_studied and progress.get(phrase.id):
                continue
            if q and q not in phrase.korean.lower() and q not in phrase.english.lower():
                continue
            rows.append(phrase)
        return rows

    @staticmethod
    def paginate(rows: List[Phrase], page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> Tuple[List[Phrase], int, int]:
        """
        Slice one page out of rows

        Returns:
            Tuple of (page rows, clamped page number, total pages)
        """
        page_size = max(1, page_size)
        total_pages = max(1, math.ceil(len(rows) / page_size))
        page = min(max(page, 1), total_pages)
        start = (page - 1) * page_size
        return rows[start:start + page_size], page, total_pages
