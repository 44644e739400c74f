"""Content-based phrase identifiers and deduplication"""

import struct
from typing import List, Optional, Set

from phrasebook_core.normalizer import Normalizer

FNV_OFFSET_BASIS = 0x811c9dc5
MASK_32 = 0xffffffff
BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def fnv1a_32(text: str) -> int:
    """
    32-bit FNV-1a over the UTF-16 code units of text

    Characters outside the BMP contribute two surrogate units, so ids
    match the ones persisted by the browser build.
    """
    h = FNV_OFFSET_BASIS
    data = text.encode('utf-16-le', 'surrogatepass')
    for (unit,) in struct.iter_unpack('<H', data):
        h ^= unit
        # h * 16777619 written as shifts
        h = (h + (h << 1) + (h << 4) + (h << 7) + (h << 8) + (h << 24)) & MASK_32
    return h


def to_base36(value: int) -> str:
    """Lowercase base-36 rendering without padding"""
    if value == 0:
        return "0"

    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(BASE36_DIGITS[rem])
    return ''.join(reversed(digits))


def hash_key(key: str) -> str:
    return to_base36(fnv1a_32(key))


def derive_id(korean: Optional[str], english: Optional[str]) -> str:
    """
    Derive the current identifier for a phrase

    Args:
        korean: Korean text
        english: English text

    Returns:
        Base-36 FNV-1a hash of the normalized pair
    """
    key = f"{Normalizer.normalize(korean)}|{Normalizer.normalize(english)}"
    return hash_key(key)


def derive_legacy_id(korean: Optional[str], english: Optional[str]) -> str:
    """
    Derive the legacy-simple identifier (trim + lowercase only)

    Only used to find progress saved before full normalization existed.
    """
    key = f"{Normalizer.trim(korean).lower()}|{Normalizer.trim(english).lower()}"
    return hash_key(key)


class Deduplicator:
    """Detect phrases that share an identifier"""

    @staticmethod
    def deduplicate(phrases: List, require_audio: bool = False) -> List:
        """
        Keep the first phrase for each identifier

        Args:
            phrases: Phrases in source order
            require_audio: Also drop phrases without an audio file

        Returns:
            Deduplicated list, order preserved
        """
        seen_ids: Set[str] = set()
        unique = []

        for phrase in phrases:
            if require_audio and not phrase.audio:
                continue
            if phrase.id in seen_ids:
                continue
            seen_ids.add(phrase.id)
            unique.append(phrase)

        return unique

    @staticmethod
    def find_duplicates(phrases: List) -> List[List[int]]:
        """
        Group positions of phrases sharing an identifier

        Returns:
            Position groups with more than one member, in first-seen order
        """
        groups = {}
        for idx, phrase in enumerate(phrases):
            groups.setdefault(phrase.id, []).append(idx)
        return [positions for positions in groups.values() if len(positions) > 1]
