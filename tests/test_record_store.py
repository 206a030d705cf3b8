import json
import tempfile
import unittest
from pathlib import Path

from resumate.core.record_store import RecordStore


def _record(record_id="rec-1", owner_id="owner-a", **overrides):
    record = {
        "id": record_id,
        "owner_id": owner_id,
        "file_name": "resume.pdf",
        "file_url": f"/files/resumes/{owner_id}/{record_id}.png",
        "resume_path": f"resumes/{owner_id}/{record_id}.png",
        "company_name": "Acme",
        "job_title": "Engineer",
        "job_description": "Build things",
        "feedback": None,
        "rating": None,
    }
    record.update(overrides)
    return record


class RecordStoreTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.store = RecordStore(
            str(Path(self.tmp.name) / "records.db"),
            job_description_max_chars=20,
            feedback_max_chars=60,
        )

    def tearDown(self):
        self.store.close()
        self.tmp.cleanup()

    def test_placeholder_then_final_is_one_record(self):
        self.store.upsert(_record())
        self.store.upsert(_record(feedback={"overallScore": 70}, rating=7))
        rows = self.store.list_by_owner("owner-a")
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["rating"], 7)
        self.assertEqual(json.loads(rows[0]["feedback"]), {"overallScore": 70})

    def test_repeated_final_write_is_idempotent(self):
        final = _record(feedback={"overallScore": 70}, rating=7, created_at="2026-01-01T00:00:00+00:00")
        self.store.upsert(final)
        self.store.upsert(final)
        self.assertEqual(len(self.store.list_by_owner("owner-a")), 1)

    def test_placeholder_has_null_feedback(self):
        self.store.upsert(_record())
        row = self.store.get("rec-1")
        self.assertIsNone(row["feedback"])
        self.assertIsNone(row["rating"])

    def test_long_job_description_is_truncated(self):
        self.store.upsert(_record(job_description="x" * 50))
        self.assertEqual(self.store.get("rec-1")["job_description"], "x" * 20 + "...")

    def test_feedback_is_capped(self):
        self.store.upsert(_record(feedback={"overallScore": 70, "note": "y" * 200}))
        self.assertEqual(len(self.store.get("rec-1")["feedback"]), 60)

    def test_list_is_newest_first_and_owner_scoped(self):
        self.store.upsert(_record("old", created_at="2026-01-01T00:00:00+00:00"))
        self.store.upsert(_record("new", created_at="2026-02-01T00:00:00+00:00"))
        self.store.upsert(_record("other", owner_id="owner-b"))
        ids = [row["id"] for row in self.store.list_by_owner("owner-a")]
        self.assertEqual(ids, ["new", "old"])

    def test_upsert_does_not_cross_owners(self):
        self.store.upsert(_record())
        self.store.upsert(_record(owner_id="owner-b", job_title="Hijacked"))
        self.assertEqual(self.store.get("rec-1")["job_title"], "Engineer")

    def test_delete_by_owner(self):
        self.store.upsert(_record("a"))
        self.store.upsert(_record("b"))
        self.store.upsert(_record("c", owner_id="owner-b"))
        self.assertEqual(self.store.delete_by_owner("owner-a"), 2)
        self.assertEqual(self.store.list_by_owner("owner-a"), [])
        self.assertIsNotNone(self.store.get("c"))

    def test_missing_id_is_rejected(self):
        with self.assertRaises(ValueError):
            self.store.upsert(_record(record_id=""))

    def test_unknown_id_returns_none(self):
        self.assertIsNone(self.store.get("missing"))


if __name__ == "__main__":
    unittest.main()
