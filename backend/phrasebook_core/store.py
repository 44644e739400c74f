"""File-backed persistence for phrases, studied progress and preferences"""

import json
import shutil
import time
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from phrasebook_core.csv_io import PhraseCSV
from phrasebook_core.progress import MigrationResult, ProgressMigrator, StudyProgress
from phrasebook_core.schemas import Phrase

logger = logging.getLogger(__name__)

PHRASES_FILE = "phrases.csv"
STUDIED_FILE = "studied.json"
PREFERENCES_FILE = "preferences.json"
SHOW_STUDIED_KEY = "showStudied"


class PhraseStore:
    """Read and write the data directory"""

    def __init__(self, data_dir: str = "data"):
        """
        Initialize store

        Args:
            data_dir: Directory holding phrases.csv, studied.json and preferences.json
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def phrases_path(self) -> Path:
        return self.data_dir / PHRASES_FILE

    @property
    def studied_path(self) -> Path:
        return self.data_dir / STUDIED_FILE

    @property
    def preferences_path(self) -> Path:
        return self.data_dir / PREFERENCES_FILE

    def read_phrases(self) -> List[Phrase]:
        if not self.phrases_path.exists():
            return []
        return PhraseCSV.read_file(self.phrases_path)

    def write_phrases(self, phrases: List[Phrase]):
        PhraseCSV.write_file(phrases, self.phrases_path)

    def backup_phrases(self) -> Optional[Path]:
        """
        Copy phrases.csv next to itself with a millisecond timestamp

        Returns:
            Backup path, or None when there is nothing to back up
        """
        if not self.phrases_path.exists():
            return None
        backup_path = self.data_dir / f"phrases.backup.{int(time.time() * 1000)}.csv"
        shutil.copyfile(self.phrases_path, backup_path)
        return backup_path

    def _read_json(self, path: Path):
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Ignoring unreadable {path.name}: {e}")
            return None

    def _write_json(self, path: Path, data):
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def read_progress(self) -> Dict[str, bool]:
        """Studied map; missing or malformed files read as empty"""
        data = self._read_json(self.studied_path)
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {STUDIED_FILE}: expected an object, got {type(data).__name__}")
            return {}
        return StudyProgress.sanitize(data)

    def write_progress(self, progress: Dict[str, bool]):
        self._write_json(self.studied_path, StudyProgress.sanitize(progress))

    def read_show_studied(self) -> bool:
        """Display preference, stored as the string "true"/"false"; defaults to True"""
        data = self._read_json(self.preferences_path)
        if not isinstance(data, dict):
            return True
        return str(data.get(SHOW_STUDIED_KEY, "true")).lower() != "false"

    def write_show_studied(self, show_studied: bool):
        data = self._read_json(self.preferences_path)
        if not isinstance(data, dict):
            data = {}
        data[SHOW_STUDIED_KEY] = "true" if show_studied else "false"
        self._write_json(self.preferences_path, data)

    def load_session(self) -> Tuple[List[Phrase], Dict[str, bool], MigrationResult]:
        """
        Load phrases and progress, migrating legacy progress keys

        studied.json is rewritten only when the migration changed something.

        Returns:
            Tuple of (phrases, migrated progress, migration result)
        """
        phrases = self.read_phrases()
        result = ProgressMigrator.run(phrases, self.read_progress())

        if result.changed:
            self.write_progress(result.progress)
            logger.info(f"Rewrote {STUDIED_FILE} with {len(result.progress)} current ids")

        return phrases, result.progress, result
