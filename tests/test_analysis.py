import unittest
from datetime import datetime

from analysis import compute_insights

START = datetime(2026, 9, 19, 12, 0, 0)
END = datetime(2026, 10, 19, 12, 0, 0)


class InsightsAggregationTests(unittest.TestCase):
    def test_empty_window(self):
        insights = compute_insights([], START, END)
        self.assertEqual(insights["total_logs"], 0)
        self.assertEqual(insights["averages"], {"pain": 0, "fatigue": 0, "energy": 0})
        for value in insights["averages"].values():
            self.assertIsInstance(value, float)
        self.assertEqual(insights["pain_days"], 0)
        self.assertEqual(insights["high_fatigue_days"], 0)
        self.assertEqual(insights["medication_doses"], 0)
        self.assertEqual(insights["top_symptoms"], [])
        self.assertEqual(
            insights["period"],
            {"start_date": "2026-09-19 12:00:00", "end_date": "2026-10-19 12:00:00"},
        )

    def test_pain_average(self):
        logs = [{"pain_level": 10}, {"pain_level": 0}, {"pain_level": 5}]
        insights = compute_insights(logs, START, END)
        self.assertEqual(insights["total_logs"], 3)
        self.assertEqual(insights["averages"]["pain"], 5.0)
        self.assertEqual(insights["averages"]["fatigue"], 0.0)
        self.assertEqual(insights["averages"]["energy"], 0.0)

    def test_missing_levels_count_as_zero_in_denominator(self):
        logs = [{"pain_level": 4}, {"pain_level": None}, {}]
        insights = compute_insights(logs, START, END)
        # (4 + 0 + 0) / 3
        self.assertEqual(insights["averages"]["pain"], 1.3)

    def test_rounding_is_half_up(self):
        quarter = [{"energy_level": 1}] + [{"energy_level": 0}] * 3
        self.assertEqual(compute_insights(quarter, START, END)["averages"]["energy"], 0.3)

        twentieth = [{"fatigue_level": 1}] + [{}] * 19
        self.assertEqual(compute_insights(twentieth, START, END)["averages"]["fatigue"], 0.1)

        thirds = [{"pain_level": 1}, {"pain_level": 1}, {"pain_level": 0}]
        self.assertEqual(compute_insights(thirds, START, END)["averages"]["pain"], 0.7)

    def test_thresholds_are_strict(self):
        logs = [
            {"pain_level": 5, "fatigue_level": 7},
            {"pain_level": 6, "fatigue_level": 8},
            {"pain_level": None, "fatigue_level": None},
            {"pain_level": 10, "fatigue_level": 7},
        ]
        insights = compute_insights(logs, START, END)
        self.assertEqual(insights["pain_days"], 2)
        self.assertEqual(insights["high_fatigue_days"], 1)

    def test_medication_doses(self):
        med = {"name": "Ibuprofen", "dosage": "400mg", "time": "08:00"}
        logs = [{"medications": [med, med]}, {"medications": None}, {}, {"medications": [med]}]
        self.assertEqual(compute_insights(logs, START, END)["medication_doses"], 3)

    def test_top_symptoms_ties_keep_first_seen_order(self):
        logs = [
            {"additional_symptoms": ["A", "B"]},
            {"additional_symptoms": ["A"]},
            {"additional_symptoms": ["C", "C"]},
        ]
        self.assertEqual(
            compute_insights(logs, START, END)["top_symptoms"],
            [
                {"symptom": "A", "count": 2},
                {"symptom": "C", "count": 2},
                {"symptom": "B", "count": 1},
            ],
        )

    def test_top_symptoms_capped_at_three(self):
        logs = [
            {"additional_symptoms": ["nausea", "cramps", "headache", "bloating"]},
            {"additional_symptoms": ["bloating", "bloating"]},
            {"additional_symptoms": None},
            {"additional_symptoms": ["headache"]},
        ]
        top = compute_insights(logs, START, END)["top_symptoms"]
        self.assertEqual(
            top,
            [
                {"symptom": "bloating", "count": 3},
                {"symptom": "headache", "count": 2},
                {"symptom": "nausea", "count": 1},
            ],
        )

    def test_accepts_any_iterable(self):
        logs = ({"pain_level": p} for p in (2, 4))
        insights = compute_insights(logs, START, END)
        self.assertEqual(insights["total_logs"], 2)
        self.assertEqual(insights["averages"]["pain"], 3.0)


if __name__ == "__main__":
    unittest.main()
