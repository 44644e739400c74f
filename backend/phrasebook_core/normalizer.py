"""Text normalization utilities"""

import re
import unicodedata
import logging
from typing import Optional

logger = logging.getLogger(__name__)

# Straight and curly quotes, parentheses, square brackets
QUOTE_BRACKET_RE = re.compile(r"[\"“”'‘’()\[\]]+")
# Characters that JavaScript treats as whitespace in \s and trim().
# Differs from str.isspace(): U+001C-001F and U+0085 are not whitespace,
# U+FEFF is. Stored ids depend on this exact set.
WHITESPACE_CHARS = (
    "\t\n\v\f\r \u00a0\u1680"
    + "".join(chr(c) for c in range(0x2000, 0x200b))
    + "\u2028\u2029\u202f\u205f\u3000\ufeff"
)
_WS = f"[{re.escape(WHITESPACE_CHARS)}]"
WHITESPACE_RE = re.compile(f"{_WS}+")
LEADING_HYPHENS_RE = re.compile(f"^{_WS}*-+{_WS}*")
TRAILING_HYPHENS_RE = re.compile(f"{_WS}*-+{_WS}*$")


class Normalizer:
    """Canonicalize text fields for identity and clean raw CSV cells"""

    @staticmethod
    def trim(text: Optional[str]) -> str:
        """Strip leading and trailing whitespace the way JavaScript trim() does"""
        return (text or "").strip(WHITESPACE_CHARS)

    @staticmethod
    def _collapse(text: str) -> str:
        return Normalizer.trim(WHITESPACE_RE.sub(' ', text))

    @staticmethod
    def _strip_symbols(text: str) -> str:
        """Replace each run of punctuation (P*) or symbol (S*) characters with one space"""
        out = []
        in_run = False
        for ch in text:
            if unicodedata.category(ch)[0] in ('P', 'S'):
                if not in_run:
                    out.append(' ')
                    in_run = True
            else:
                out.append(ch)
                in_run = False
        return ''.join(out)

    @staticmethod
    def _full_pass(text: str) -> str:
        text = unicodedata.normalize('NFKC', text.lower())
        text = QUOTE_BRACKET_RE.sub('', text)
        text = Normalizer._strip_symbols(text)
        return Normalizer._collapse(text)

    @staticmethod
    def normalize_full(text: Optional[str]) -> str:
        """
        Unicode-aware normalization

        Lowercase, NFKC, drop quotes and brackets, turn punctuation and
        symbol runs into a space, collapse whitespace.

        Args:
            text: Raw text (None is treated as empty)

        Returns:
            Normalized text
        """
        if not text:
            return ""

        result = Normalizer._full_pass(text)
        # Stripping can expose a new composition or case mapping
        while True:
            again = Normalizer._full_pass(result)
            if again == result:
                return result
            result = again

    @staticmethod
    def normalize_basic(text: Optional[str]) -> str:
        """
        Reduced normalization: lowercase, drop quotes and brackets, collapse whitespace

        Args:
            text: Raw text (None is treated as empty)

        Returns:
            Normalized text
        """
        if not text:
            return ""

        text = QUOTE_BRACKET_RE.sub('', text.lower())
        return Normalizer._collapse(text)

    @staticmethod
    def normalize(text: Optional[str]) -> str:
        """
        Normalize text for identity, falling back to the basic path

        Never raises for string input.
        """
        try:
            return Normalizer.normalize_full(text)
        except (UnicodeError, ValueError) as e:
            logger.debug(f"Unicode normalization unavailable, using basic path: {e}")
            return Normalizer.normalize_basic(text)

    @staticmethod
    def strip_edge_hyphens(text: str) -> str:
        """Remove leading/trailing hyphen runs and the spaces around them"""
        text = LEADING_HYPHENS_RE.sub('', text)
        return TRAILING_HYPHENS_RE.sub('', text)

    @staticmethod
    def clean_cell(value) -> str:
        """
        Clean a raw CSV cell

        Args:
            value: Cell value (None allowed)

        Returns:
            Trimmed, unquoted cell text without edge hyphens
        """
        if value is None:
            return ""

        s = Normalizer.trim(str(value))
        if s.endswith(','):
            s = s[:-1]

        # RFC 4180 quoting
        if len(s) >= 2 and s.startswith('"') and s.endswith('"'):
            s = s[1:-1].replace('""', '"')

        # Stray quotes left by earlier broken exports
        s = Normalizer.trim(s.strip('"'))
        return Normalizer.strip_edge_hyphens(s)
