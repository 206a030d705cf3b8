import json
import unittest
import uuid
from io import BytesIO
from unittest.mock import patch

from fastapi.testclient import TestClient
from PIL import Image

from resumate.core.record_store import get_record_store
from resumate.main import app

REPORT = {
    "overallScore": 78,
    "ATS": {"score": 82, "tips": [{"type": "good", "tip": "Standard headings"}]},
    "toneAndStyle": {"score": 75, "tips": [{"type": "improve", "tip": "Fewer buzzwords", "explanation": "Be concrete."}]},
    "content": {"score": 70, "tips": []},
    "structure": {"score": 80, "tips": []},
    "skills": {"score": 76, "tips": []},
}


class FakeAIClient:
    def __init__(self, text=None, error=None):
        self.text = text if text is not None else "```json\n" + json.dumps(REPORT) + "\n```"
        self.error = error

    async def generate(self, image, instructions):
        if self.error:
            raise self.error
        return self.text


def _png_upload():
    buffer = BytesIO()
    Image.new("RGB", (32, 48), color="white").save(buffer, format="PNG")
    return {"file": ("resume.png", buffer.getvalue(), "image/png")}


class ResumesApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def setUp(self):
        self.owner = f"owner-{uuid.uuid4().hex[:12]}"
        self.headers = {"X-Owner-Id": self.owner}
        self.form = {"job_title": "Backend Engineer", "job_description": "Python", "company_name": "Acme"}

    def _analyze(self, ai_client=None, **kwargs):
        with patch("resumate.api.v1.resumes.get_ai_client", return_value=ai_client or FakeAIClient()):
            return self.client.post(
                "/v1/resumes/analyze",
                headers=kwargs.get("headers", self.headers),
                data=kwargs.get("data", self.form),
                files=kwargs.get("files", _png_upload()),
            )

    def test_health(self):
        response = self.client.get("/v1/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "healthy"})

    def test_analyze_returns_record(self):
        response = self._analyze()
        self.assertEqual(response.status_code, 200)
        body = response.json()
        record = body["record"]
        self.assertEqual(record["owner_id"], self.owner)
        self.assertEqual(record["rating"], 8)
        self.assertEqual(record["feedback"]["overallScore"], 78)
        self.assertEqual(record["feedback"]["toneAndStyle"]["tips"][0]["type"], "improve")
        self.assertTrue(record["file_url"].endswith(f"resumes/{self.owner}/{record['id']}.png"))
        self.assertFalse(body["defaulted"])
        self.assertEqual(body["status_history"][-1], "Analysis complete! Rating: 8/10")

    def test_analyze_requires_owner(self):
        response = self._analyze(headers={})
        self.assertEqual(response.status_code, 401)

    def test_analyze_rejects_blank_title(self):
        response = self._analyze(data={"job_title": "   "})
        self.assertEqual(response.status_code, 422)

    def test_analyze_rejects_unsupported_extension(self):
        response = self._analyze(files={"file": ("resume.txt", b"plain text", "text/plain")})
        self.assertEqual(response.status_code, 400)

    def test_analyze_rejects_corrupt_image(self):
        response = self._analyze(files={"file": ("resume.png", b"not an image", "image/png")})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"]["stage"], "converting")
        self.assertEqual(get_record_store().list_by_owner(self.owner), [])

    def test_model_failure_leaves_placeholder(self):
        response = self._analyze(ai_client=FakeAIClient(error=RuntimeError("quota exceeded")))
        self.assertEqual(response.status_code, 502)
        detail = response.json()["detail"]
        self.assertEqual(detail["stage"], "invoking")
        rows = get_record_store().list_by_owner(self.owner)
        self.assertEqual(len(rows), 1)
        self.assertIsNone(rows[0]["feedback"])
        self.assertEqual(rows[0]["id"], detail["record_id"])

    def test_missing_model_configuration_is_503(self):
        with patch("resumate.api.v1.resumes.get_ai_client", side_effect=RuntimeError("GEMINI_API_KEY is missing")):
            response = self.client.post(
                "/v1/resumes/analyze", headers=self.headers, data=self.form, files=_png_upload()
            )
        self.assertEqual(response.status_code, 503)
        self.assertEqual(get_record_store().list_by_owner(self.owner), [])

    def test_prose_only_answer_is_defaulted(self):
        response = self._analyze(ai_client=FakeAIClient(text="I cannot help with that."))
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["defaulted"])
        self.assertEqual(body["record"]["rating"], 5)

    def test_list_get_and_feedback_view(self):
        first = self._analyze().json()["record"]["id"]
        second = self._analyze().json()["record"]["id"]

        listing = self.client.get("/v1/resumes", headers=self.headers)
        self.assertEqual(listing.status_code, 200)
        ids = [item["id"] for item in listing.json()["resumes"]]
        self.assertEqual(ids, [second, first])

        single = self.client.get(f"/v1/resumes/{first}", headers=self.headers)
        self.assertEqual(single.status_code, 200)
        self.assertEqual(single.json()["feedback"]["ATS"]["score"], 82)

        view = self.client.get(f"/v1/resumes/{first}/feedback", headers=self.headers)
        self.assertEqual(view.status_code, 200)
        body = view.json()
        self.assertEqual(body["rating"], 8)
        self.assertTrue(body["narrative"].startswith("Your resume received an overall score of 78/100."))
        self.assertIsNone(body["raw"])

    def test_legacy_summary_feedback_is_presented(self):
        record_id = self._analyze().json()["record"]["id"]
        row = get_record_store().get(record_id)
        legacy = {"summary": "```json\\n" + json.dumps({"overallScore": 40, "ATS": {"score": 45, "tips": []}}) + "\\n```"}
        get_record_store().upsert({**row, "feedback": json.dumps(legacy)})

        view = self.client.get(f"/v1/resumes/{record_id}/feedback", headers=self.headers).json()
        self.assertEqual(view["feedback"]["overallScore"], 40)

    def test_unreadable_feedback_falls_back_to_raw(self):
        record_id = self._analyze().json()["record"]["id"]
        row = get_record_store().get(record_id)
        get_record_store().upsert({**row, "feedback": '{"overallScore": 70, "ATS": {"sco'})

        view = self.client.get(f"/v1/resumes/{record_id}/feedback", headers=self.headers).json()
        self.assertIsNone(view["feedback"])
        self.assertEqual(view["narrative"], "")
        self.assertEqual(view["raw"], '{"overallScore": 70, "ATS": {"sco')

    def test_other_owner_gets_404(self):
        record_id = self._analyze().json()["record"]["id"]
        response = self.client.get(f"/v1/resumes/{record_id}", headers={"X-Owner-Id": "someone-else"})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(self.client.get("/v1/resumes/missing-id", headers=self.headers).status_code, 404)

    def test_wipe_removes_records_and_objects(self):
        self._analyze()
        self._analyze()
        response = self.client.delete("/v1/resumes", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"records_deleted": 2, "objects_deleted": 2})
        self.assertEqual(self.client.get("/v1/resumes", headers=self.headers).json()["resumes"], [])

    def test_stream_emits_status_then_result(self):
        with patch("resumate.api.v1.resumes.get_ai_client", return_value=FakeAIClient()):
            response = self.client.post(
                "/v1/resumes/analyze/stream", headers=self.headers, data=self.form, files=_png_upload()
            )
        self.assertEqual(response.status_code, 200)
        self.assertIn("text/event-stream", response.headers["content-type"])
        text = response.text
        self.assertIn("event: status", text)
        self.assertIn("Uploading resume...", text)
        self.assertIn("event: result", text)
        self.assertNotIn("event: error", text)

    def test_stream_reports_model_failure(self):
        with patch(
            "resumate.api.v1.resumes.get_ai_client",
            return_value=FakeAIClient(error=RuntimeError("quota exceeded")),
        ):
            response = self.client.post(
                "/v1/resumes/analyze/stream", headers=self.headers, data=self.form, files=_png_upload()
            )
        self.assertIn("event: error", response.text)
        self.assertIn('"stage": "invoking"', response.text)

    def test_analytics_summary_counts_runs(self):
        self._analyze()
        response = self.client.get("/v1/analytics/summary")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["enabled"])
        self.assertGreaterEqual(body["total"], 1)
        runs = self.client.get("/v1/analytics/runs", params={"limit": 5}).json()
        self.assertLessEqual(len(runs), 5)
        self.assertIn(runs[0]["status"], {"success", "defaulted", "error", "empty"})


if __name__ == "__main__":
    unittest.main()
