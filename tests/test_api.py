import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from fastapi.testclient import TestClient
from starlette.datastructures import UploadFile

from phrasebook_api.main import create_app
from phrasebook_core.identity import derive_id


def _config(data_dir):
    return {
        "data_dir": data_dir,
        "media_dir": "",
        "host": "127.0.0.1",
        "port": 3001,
        "page_size": 10,
        "max_upload_mb": 1,
        "cors_origins": ["http://localhost:5173"],
    }


class APITestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def client(self):
        return TestClient(create_app(_config(str(self.data_dir))))


class HealthAndErrorsTests(APITestCase):
    def test_health(self):
        response = self.client().get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")
        self.assertIn("timestamp", response.json())

    def test_unknown_endpoint(self):
        response = self.client().get("/api/nope")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Endpoint not found"})


class PhraseRouteTests(APITestCase):
    def test_add_and_list(self):
        client = self.client()
        response = client.post("/api/phrases", json={"korean": " 사과 ", "english": "apple"})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["id"], derive_id("사과", "apple"))
        self.assertEqual(response.json()["korean"], "사과")

        client.post("/api/phrases", json={"korean": "바나나", "english": "banana"})
        listed = client.get("/api/phrases").json()
        self.assertEqual([p["english"] for p in listed], ["banana", "apple"])

    def test_add_requires_both_fields(self):
        response = self.client().post("/api/phrases", json={"korean": "", "english": "apple"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Korean and English text are required"})

    def test_add_duplicate(self):
        client = self.client()
        client.post("/api/phrases", json={"korean": "사과", "english": "apple"})
        response = client.post("/api/phrases", json={"korean": "(사과)", "english": "Apple!"})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json(), {"error": "Phrase already exists"})

    def test_update_moves_studied_mark(self):
        client = self.client()
        old_id = client.post("/api/phrases", json={"korean": "사과", "english": "apple"}).json()["id"]
        client.post(f"/api/studied/{old_id}", json={"studied": True})

        response = client.put("/api/phrases/0", json={"korean": "사과", "english": "an apple"})
        self.assertEqual(response.status_code, 200)
        new_id = response.json()["id"]
        self.assertNotEqual(new_id, old_id)
        self.assertEqual(client.get("/api/studied").json(), {new_id: True})

    def test_update_unknown_index_and_collision(self):
        client = self.client()
        client.post("/api/phrases", json={"korean": "사과", "english": "apple"})
        client.post("/api/phrases", json={"korean": "바나나", "english": "banana"})

        self.assertEqual(client.put("/api/phrases/9", json={"korean": "a", "english": "b"}).status_code, 404)
        response = client.put("/api/phrases/0", json={"korean": "사과", "english": "apple"})
        self.assertEqual(response.status_code, 409)

    def test_delete_removes_studied_mark(self):
        client = self.client()
        phrase_id = client.post("/api/phrases", json={"korean": "사과", "english": "apple"}).json()["id"]
        client.post(f"/api/studied/{phrase_id}", json={"studied": True})

        response = client.delete("/api/phrases/0")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(client.get("/api/phrases").json(), [])
        self.assertEqual(client.get("/api/studied").json(), {})
        self.assertEqual(client.delete("/api/phrases/0").status_code, 404)

    def test_filtered_page(self):
        client = self.client()
        for korean, english in [("사과", "apple"), ("바나나", "banana"), ("포도", "grape")]:
            client.post("/api/phrases", json={"korean": korean, "english": english})
        grape_id = derive_id("포도", "grape")
        client.post(f"/api/studied/{grape_id}", json={"studied": True})

        page = client.get("/api/phrases", params={"show_studied": "false", "page_size": 1, "page": 2}).json()
        self.assertEqual(page["totalItems"], 2)
        self.assertEqual(page["totalPages"], 2)
        self.assertEqual(page["page"], 2)
        self.assertEqual([p["english"] for p in page["items"]], ["apple"])

        page = client.get("/api/phrases", params={"q": "NAN"}).json()
        self.assertEqual([p["english"] for p in page["items"]], ["banana"])

    def test_page_size_is_clamped(self):
        client = self.client()
        client.post("/api/phrases", json={"korean": "사과", "english": "apple"})
        client.post("/api/phrases", json={"korean": "바나나", "english": "banana"})

        page = client.get("/api/phrases", params={"page_size": -5}).json()

        self.assertEqual(page["pageSize"], 1)
        self.assertEqual(page["totalPages"], 2)
        self.assertEqual(len(page["items"]), 1)

    def test_multiline_phrase_keeps_id_and_studied_mark(self):
        client = self.client()
        added = client.post("/api/phrases", json={"korean": "안녕\n하세요", "english": "hello"}).json()
        client.post(f"/api/studied/{added['id']}", json={"studied": True})

        reloaded = self.client()

        listed = reloaded.get("/api/phrases").json()
        self.assertEqual([(p["id"], p["korean"]) for p in listed], [("18i10si", "안녕\n하세요")])
        self.assertEqual(reloaded.get("/api/studied").json(), {"18i10si": True})


class ImportRouteTests(APITestCase):
    def test_import_merges(self):
        client = self.client()
        client.post("/api/phrases", json={"korean": "사과", "english": "apple"})
        csv_bytes = "korean,english,audio\n사과,Apple.,\n바나나,banana,b.mp3\n".encode("utf-8")

        response = client.post("/api/import", files={"csvFile": ("phrases.csv", csv_bytes, "text/csv")})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            "message": "Import successful: 1 new phrases added",
            "totalPhrases": 2,
            "newPhrases": 1,
        })

    def test_import_rejections(self):
        client = self.client()
        self.assertEqual(client.post("/api/import").json(), {"error": "No CSV file provided"})

        response = client.post("/api/import", files={"csvFile": ("notes.txt", b"a,b", "text/plain")})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Only CSV files are allowed"})

        response = client.post("/api/import", files={"csvFile": ("empty.csv", b"korean,english\nonly,", "text/csv")})
        self.assertEqual(response.json(), {"error": "No valid phrases found in CSV"})

        big = b"a,b\n" * (300 * 1024)
        response = client.post("/api/import", files={"csvFile": ("big.csv", big, "text/csv")})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "File too large (max 1MB)"})

    def test_upload_at_the_limit_is_accepted(self):
        exact = b"a,b" + b" " * (1024 * 1024 - 3)
        response = self.client().post("/api/import", files={"csvFile": ("exact.csv", exact, "text/csv")})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["newPhrases"], 1)

    def test_upload_read_is_bounded(self):
        original = UploadFile.read
        sizes = []

        async def recording_read(self, size=-1):
            sizes.append(size)
            return await original(self, size)

        big = b"a,b\n" * (300 * 1024)
        with patch.object(UploadFile, "read", recording_read):
            response = self.client().post("/api/import", files={"csvFile": ("big.csv", big, "text/csv")})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(sizes, [1024 * 1024 + 1])


class StudiedRouteTests(APITestCase):
    def test_mark_unmark_clear(self):
        client = self.client()
        self.assertEqual(client.post("/api/studied/abc", json={"studied": True}).json(), {"id": "abc", "studied": True})
        client.post("/api/studied/def", json={"studied": True})
        self.assertEqual(client.get("/api/studied").json(), {"abc": True, "def": True})

        client.post("/api/studied/abc", json={"studied": False})
        self.assertEqual(client.get("/api/studied").json(), {"def": True})

        response = client.delete("/api/studied")
        self.assertEqual(response.json(), {"message": "All studied data cleared"})
        self.assertEqual(client.get("/api/studied").json(), {})

    def test_replace_keeps_truthy_entries(self):
        client = self.client()
        response = client.put("/api/studied", json={"a": True, "b": False})
        self.assertEqual(response.json(), {"a": True})

    def test_invalid_body(self):
        response = self.client().post("/api/studied/abc", json={})
        self.assertEqual(response.status_code, 400)
        self.assertIn("error", response.json())

    def test_migrate_endpoint(self):
        client = self.client()
        phrase_id = client.post("/api/phrases", json={"korean": "안녕하세요!", "english": "Hello.", "audio": "a.mp3"}).json()["id"]
        client.put("/api/studied", json={"a.mp3": True, "foo": True})

        summary = client.post("/api/studied/migrate").json()

        self.assertTrue(summary["changed"])
        self.assertEqual(summary["studied"], {phrase_id: True})
        self.assertEqual(summary["carried"]["audio"], 1)
        self.assertEqual(summary["dropped"], ["foo"])
        self.assertEqual(client.get("/api/studied").json(), {phrase_id: True})

        again = client.post("/api/studied/migrate").json()
        self.assertFalse(again["changed"])

    def test_startup_migrates_legacy_progress(self):
        (self.data_dir / "phrases.csv").write_text("korean,english,audio\n안녕하세요,Hello,a.mp3", encoding="utf-8")
        (self.data_dir / "studied.json").write_text(json.dumps({"0": True}), encoding="utf-8")

        client = self.client()

        self.assertEqual(client.get("/api/studied").json(), {"dkysam": True})


class PreferencesRouteTests(APITestCase):
    def test_show_studied_preference(self):
        client = self.client()
        self.assertEqual(client.get("/api/preferences").json(), {"showStudied": True})
        client.put("/api/preferences", json={"showStudied": False})
        self.assertEqual(client.get("/api/preferences").json(), {"showStudied": False})


if __name__ == "__main__":
    unittest.main()
