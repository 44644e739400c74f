"""CSV reading and writing for phrase lists"""

import csv
import io
import logging
from typing import Iterable, List

from pydantic import ValidationError

from phrasebook_core.normalizer import Normalizer
from phrasebook_core.schemas import Phrase

logger = logging.getLogger(__name__)

CSV_HEADER = ["korean", "english", "audio"]


class PhraseCSV:
    """Parse and serialize the korean,english,audio CSV format"""

    @staticmethod
    def _is_header(first: List[str], total: int) -> bool:
        cells = [cell.strip().lower() for cell in first]
        # A lone "korean" record is only a header when it is exactly ours
        if total > 1 and any('korean' in cell for cell in cells):
            return True
        return cells == CSV_HEADER

    @staticmethod
    def _records(text: str) -> List[List[str]]:
        """Split text into records; quoted cells may span lines"""
        reader = csv.reader(io.StringIO(text), skipinitialspace=True)
        records = [cells for cells in reader if any(cells)]
        if records and PhraseCSV._is_header(records[0], len(records)):
            return records[1:]
        return records

    @staticmethod
    def parse(text: str) -> List[Phrase]:
        """
        Parse CSV text into phrases

        Args:
            text: Raw CSV text, header optional

        Returns:
            Phrases in file order; rows without korean or english are skipped
        """
        if not text:
            return []

        text = text.lstrip('\ufeff')
        phrases = []
        for row_no, cells in enumerate(PhraseCSV._records(text), start=1):
            cols = [Normalizer.clean_cell(cell) for cell in cells]
            korean = cols[0] if len(cols) > 0 else ''
            english = cols[1] if len(cols) > 1 else ''
            audio = cols[2] if len(cols) > 2 else ''

            if not korean or not english:
                continue

            try:
                phrases.append(Phrase(korean=korean, english=english, audio=audio))
            except ValidationError as e:
                logger.warning(f"Skipping CSV row {row_no}: {e}")

        return phrases

    @staticmethod
    def stringify(phrases: Iterable[Phrase]) -> str:
        """
        Serialize phrases to CSV text with a header row

        Returns:
            CSV text, newline separated, no trailing newline
        """
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator='\n')
        writer.writerow(CSV_HEADER)
        for phrase in phrases:
            writer.writerow([phrase.korean, phrase.english, phrase.audio])
        return buffer.getvalue().rstrip('\n')

    @staticmethod
    def read_file(path) -> List[Phrase]:
        with open(path, 'r', encoding='utf-8') as f:
            return PhraseCSV.parse(f.read())

    @staticmethod
    def write_file(phrases: Iterable[Phrase], path):
        with open(path, 'w', encoding='utf-8', newline='') as f:
            f.write(PhraseCSV.stringify(phrases))
