import json
import tempfile
import unittest
from pathlib import Path

from phrasebook_core.schemas import Phrase
from phrasebook_core.store import PhraseStore


class PhraseStoreTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._tmp.name) / "data"
        self.store = PhraseStore(str(self.data_dir))

    def tearDown(self):
        self._tmp.cleanup()

    def test_creates_directory_and_reads_empty(self):
        self.assertTrue(self.data_dir.is_dir())
        self.assertEqual(self.store.read_phrases(), [])
        self.assertEqual(self.store.read_progress(), {})
        self.assertTrue(self.store.read_show_studied())

    def test_phrases_round_trip(self):
        phrases = [Phrase(korean="사과", english="apple", audio="apple.mp3")]
        self.store.write_phrases(phrases)
        self.assertEqual(self.store.read_phrases(), phrases)

    def test_malformed_progress_reads_as_empty(self):
        self.store.studied_path.write_text("{not json", encoding="utf-8")
        with self.assertLogs("phrasebook_core.store", level="WARNING"):
            self.assertEqual(self.store.read_progress(), {})

    def test_non_object_progress_reads_as_empty(self):
        self.store.studied_path.write_text("[1, 2]", encoding="utf-8")
        with self.assertLogs("phrasebook_core.store", level="WARNING"):
            self.assertEqual(self.store.read_progress(), {})

    def test_write_progress_drops_false_entries(self):
        self.store.write_progress({"a": True, "b": False})
        data = json.loads(self.store.studied_path.read_text(encoding="utf-8"))
        self.assertEqual(data, {"a": True})

    def test_show_studied_stored_as_string(self):
        self.store.write_show_studied(False)
        data = json.loads(self.store.preferences_path.read_text(encoding="utf-8"))
        self.assertEqual(data, {"showStudied": "false"})
        self.assertFalse(self.store.read_show_studied())
        self.store.write_show_studied(True)
        self.assertTrue(self.store.read_show_studied())

    def test_load_session_migrates_and_persists(self):
        phrase = Phrase(korean="안녕하세요!", english="Hello.", audio="a.mp3")
        self.store.write_phrases([phrase])
        self.store.write_progress({"0": True})

        phrases, progress, result = self.store.load_session()

        self.assertEqual(phrases, [phrase])
        self.assertEqual(progress, {phrase.id: True})
        self.assertTrue(result.changed)
        self.assertEqual(self.store.read_progress(), {phrase.id: True})

    def test_load_session_skips_write_when_unchanged(self):
        phrase = Phrase(korean="사과", english="apple")
        self.store.write_phrases([phrase])
        self.store.write_progress({phrase.id: True, "orphan": True})

        _, progress, result = self.store.load_session()

        self.assertFalse(result.changed)
        self.assertEqual(progress, {phrase.id: True})
        # File untouched, stray key still there
        self.assertEqual(self.store.read_progress(), {phrase.id: True, "orphan": True})

    def test_backup_phrases(self):
        self.assertIsNone(self.store.backup_phrases())
        self.store.write_phrases([Phrase(korean="사과", english="apple")])
        backup = self.store.backup_phrases()
        self.assertTrue(backup.name.startswith("phrases.backup."))
        self.assertEqual(backup.read_text(encoding="utf-8"), self.store.phrases_path.read_text(encoding="utf-8"))


if __name__ == "__main__":
    unittest.main()
