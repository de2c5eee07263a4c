import unittest
from datetime import datetime, timedelta

from api_case import ApiTestCase
from config import _to_storage, _utcnow
from reports import assemble_report
from store import EntityStore


class InsightsEndpointTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.user = self._register(self.client, first_name="Alice")
        self.store = EntityStore()

    def test_insights_over_default_window(self):
        headers = self._headers(self.client)
        for payload in [
            {"pain_level": 10, "fatigue_level": 8, "energy_level": 2,
             "additional_symptoms": ["cramps", "nausea"],
             "medications": [{"name": "Ibuprofen", "dosage": "400mg", "time": "08:00"}]},
            {"pain_level": 0, "fatigue_level": 7, "energy_level": 4,
             "additional_symptoms": ["cramps"]},
            {"pain_level": 5, "fatigue_level": None, "energy_level": 3},
        ]:
            resp = self.client.post("/api/symptom-logs", headers=headers, json=payload)
            self.assertEqual(resp.status_code, 201)
        # outside the 30-day window
        self.store.create("symptom_logs", self.user["id"], {
            "date": _utcnow() - timedelta(days=31), "pain_level": 9,
            "additional_symptoms": ["headache", "headache", "headache"],
        })

        resp = self.client.get("/api/insights")
        self.assertEqual(resp.status_code, 200)
        insights = resp.json()
        self.assertEqual(insights["total_logs"], 3)
        self.assertEqual(insights["averages"], {"pain": 5.0, "fatigue": 5.0, "energy": 3.0})
        self.assertEqual(insights["pain_days"], 1)
        self.assertEqual(insights["high_fatigue_days"], 1)
        self.assertEqual(insights["medication_doses"], 1)
        self.assertEqual(
            insights["top_symptoms"],
            [{"symptom": "cramps", "count": 2}, {"symptom": "nausea", "count": 1}],
        )
        start = datetime.strptime(insights["period"]["start_date"], "%Y-%m-%d %H:%M:%S")
        end = datetime.strptime(insights["period"]["end_date"], "%Y-%m-%d %H:%M:%S")
        self.assertEqual(end - start, timedelta(days=30))

        wider = self.client.get("/api/insights", params={"days": 60}).json()
        self.assertEqual(wider["total_logs"], 4)

    def test_insights_empty(self):
        insights = self.client.get("/api/insights").json()
        self.assertEqual(insights["total_logs"], 0)
        self.assertEqual(insights["averages"], {"pain": 0, "fatigue": 0, "energy": 0})
        self.assertEqual(insights["top_symptoms"], [])

    def test_insights_ignore_other_users(self):
        other = self._new_client()
        self._register(other, "bob")
        other.post("/api/symptom-logs", headers=self._headers(other), json={"pain_level": 9})
        self.assertEqual(self.client.get("/api/insights").json()["total_logs"], 0)

    def test_symptom_log_range_filter(self):
        uid = self.user["id"]
        for day in (1, 5, 10):
            self.store.create("symptom_logs", uid, {"date": datetime(2026, 3, day, 12), "notes": f"d{day}"})
        resp = self.client.get(
            "/api/symptom-logs",
            params={"start_date": "2026-03-05T12:00:00", "end_date": "2026-03-10T12:00:00"},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([log["notes"] for log in resp.json()["symptom_logs"]], ["d10", "d5"])

        half = self.client.get("/api/symptom-logs", params={"start_date": "2026-03-01"})
        self.assertEqual(half.status_code, 400)

    def test_generate_report_endpoint(self):
        uid = self.user["id"]
        self.store.create("symptom_logs", uid, {"date": datetime(2026, 2, 3, 9), "pain_level": 4})
        resp = self.client.post(
            "/api/generate-report",
            headers=self._headers(self.client),
            json={"start_date": "2026-02-01", "end_date": "2026-02-28"},
        )
        self.assertEqual(resp.status_code, 200)
        report = resp.json()
        self.assertEqual(report["user"], {"id": uid, "name": "Alice"})
        self.assertEqual(len(report["symptom_logs"]), 1)
        self.assertEqual(
            report["period"], {"start_date": "2026-02-01 00:00:00", "end_date": "2026-02-28 00:00:00"}
        )

        missing = self.client.post(
            "/api/generate-report", headers=self._headers(self.client), json={"start_date": "2026-02-01"}
        )
        self.assertEqual(missing.status_code, 400)
        self.assertIn("end_date", missing.json()["fields"])

        backwards = self.client.post(
            "/api/generate-report",
            headers=self._headers(self.client),
            json={"start_date": "2026-03-01", "end_date": "2026-02-01"},
        )
        self.assertEqual(backwards.status_code, 400)

        out_of_range = self.client.post(
            "/api/generate-report",
            headers=self._headers(self.client),
            json={"start_date": "2026-02-01", "end_date": "9999-12-31T23:00:00-05:00"},
        )
        self.assertEqual(out_of_range.status_code, 400)
        self.assertIn("end_date", out_of_range.json()["fields"])


class ReportAssemblyTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.store = EntityStore()
        self.user = self.store.create_user("carol", "x:y", {"first_name": None})
        self.other = self.store.create_user("dave", "x:y", {})
        self.now = datetime(2026, 6, 15, 12, 0, 0)

    def test_limits_and_ordering(self):
        uid = self.user["id"]
        for day in range(1, 13):
            self.store.create("symptom_logs", uid, {"date": datetime(2026, 6, day, 8), "notes": str(day)})
        self.store.create("symptom_logs", uid, {"date": datetime(2026, 4, 1, 8), "notes": "old"})
        self.store.create("symptom_logs", self.other["id"], {"date": datetime(2026, 6, 2, 8)})
        for year in range(2019, 2026):
            self.store.create("medical_timeline", uid, {
                "title": f"visit {year}", "type": "visit", "date": _to_storage(datetime(year, 1, 1)),
            })
        for title, days, completed in [
            ("plus1", 1, False), ("plus2", 2, False), ("plus3", 3, False), ("plus4", 4, False),
            ("done", 5, True), ("past", -1, False), ("now", 0, False),
        ]:
            self.store.create("appointments", uid, {
                "title": title, "date": _to_storage(self.now + timedelta(days=days)),
                "completed": completed,
            })

        report = assemble_report(
            self.store, self.user, datetime(2026, 6, 1), datetime(2026, 6, 30), now=self.now
        )
        self.assertEqual(report["user"], {"id": uid, "name": "carol"})
        self.assertEqual([log["notes"] for log in report["symptom_logs"]],
                         [str(d) for d in range(12, 2, -1)])
        self.assertEqual([e["title"] for e in report["medical_timeline"]],
                         [f"visit {y}" for y in range(2025, 2020, -1)])
        # taken from the date-descending appointment list
        self.assertEqual([a["title"] for a in report["upcoming_appointments"]],
                         ["plus4", "plus3", "plus2"])

    def test_upcoming_appointments_store_query(self):
        uid = self.user["id"]
        for title, days, completed in [
            ("later", 10, False), ("done", 2, True), ("past", -2, False), ("now", 0, False),
            ("soon", 1, False),
        ]:
            self.store.create("appointments", uid, {
                "title": title, "date": _to_storage(self.now + timedelta(days=days)),
                "completed": completed,
            })
        self.store.create("appointments", self.other["id"], {
            "title": "theirs", "date": _to_storage(self.now + timedelta(days=1)),
        })
        upcoming = self.store.upcoming_appointments(uid, now=self.now)
        self.assertEqual([a["title"] for a in upcoming], ["soon", "later"])

    def test_date_range_is_inclusive(self):
        uid = self.user["id"]
        start, end = datetime(2026, 6, 1), datetime(2026, 6, 30)
        self.store.create("symptom_logs", uid, {"date": start, "notes": "start"})
        self.store.create("symptom_logs", uid, {"date": end, "notes": "end"})
        self.store.create("symptom_logs", uid, {"date": end + timedelta(seconds=1), "notes": "after"})
        logs = self.store.symptom_logs_by_date_range(uid, start, end)
        self.assertEqual([log["notes"] for log in logs], ["end", "start"])


if __name__ == "__main__":
    unittest.main()
