import unittest

from ocsf_models.sibling import SiblingPair, reconcile_siblings

SEVERITY = SiblingPair(
    "severity_id",
    "severity",
    {0: "Unknown", 1: "Informational", 2: "Low", 99: "Other"},
)


class TestReconcileSiblings(unittest.TestCase):
    def test_consistent_pair_normalizes_label(self):
        result = reconcile_siblings(
            {"severity_id": 1, "severity": "INFORMATIONAL"}, [SEVERITY]
        )
        self.assertEqual(result, {"severity_id": 1, "severity": "Informational"})

    def test_mismatched_pair_raises(self):
        with self.assertRaisesRegex(ValueError, "severity_id=2"):
            reconcile_siblings(
                {"severity_id": 2, "severity": "Informational"}, [SEVERITY]
            )

    def test_other_keeps_custom_label(self):
        result = reconcile_siblings(
            {"severity_id": 99, "severity": "Vendor Specific"}, [SEVERITY]
        )
        self.assertEqual(result, {"severity_id": 99, "severity": "Vendor Specific"})

    def test_other_given_as_string(self):
        result = reconcile_siblings(
            {"severity_id": "99", "severity": "Vendor Specific"}, [SEVERITY]
        )
        self.assertEqual(result, {"severity_id": 99, "severity": "Vendor Specific"})

    def test_id_only_fills_label(self):
        result = reconcile_siblings({"severity_id": 2}, [SEVERITY])
        self.assertEqual(result, {"severity_id": 2, "severity": "Low"})

    def test_known_label_only_fills_id(self):
        result = reconcile_siblings({"severity": "low"}, [SEVERITY])
        self.assertEqual(result, {"severity_id": 2, "severity": "Low"})

    def test_unknown_label_only_maps_to_other(self):
        result = reconcile_siblings({"severity": "Catastrophic"}, [SEVERITY])
        self.assertEqual(result, {"severity_id": 99, "severity": "Catastrophic"})

    def test_neither_is_unchanged(self):
        data = {"message": "hello"}
        self.assertEqual(reconcile_siblings(data, [SEVERITY]), data)

    def test_empty_label_counts_as_absent(self):
        result = reconcile_siblings({"severity_id": 1, "severity": ""}, [SEVERITY])
        self.assertEqual(result["severity"], "Informational")

    def test_unknown_id_left_for_validation(self):
        result = reconcile_siblings({"severity_id": 42}, [SEVERITY])
        self.assertEqual(result, {"severity_id": 42})

    def test_input_not_mutated(self):
        data = {"severity": "low"}
        reconcile_siblings(data, [SEVERITY])
        self.assertEqual(data, {"severity": "low"})

    def test_multiple_pairs(self):
        activity = SiblingPair("activity_id", "activity_name", {1: "Create"})
        result = reconcile_siblings(
            {"activity_id": 1, "severity": "Low"}, [activity, SEVERITY]
        )
        self.assertEqual(
            result,
            {
                "activity_id": 1,
                "activity_name": "Create",
                "severity_id": 2,
                "severity": "Low",
            },
        )
