import unittest

from ocsf_models.uid import UidConfig, prefill_uids

FILE_ACTIVITY = UidConfig(category_uid=1, class_uid=1001)


class TestPrefillUids(unittest.TestCase):
    def test_fills_missing_uids(self):
        result = prefill_uids({"activity_id": 1}, FILE_ACTIVITY)
        self.assertEqual(result["category_uid"], 1)
        self.assertEqual(result["class_uid"], 1001)
        self.assertEqual(result["type_uid"], 100101)

    def test_fills_none_values(self):
        result = prefill_uids(
            {"activity_id": 2, "category_uid": None, "class_uid": None}, FILE_ACTIVITY
        )
        self.assertEqual(result["category_uid"], 1)
        self.assertEqual(result["class_uid"], 1001)
        self.assertEqual(result["type_uid"], 100102)

    def test_user_values_win(self):
        data = {"activity_id": 1, "category_uid": 5, "class_uid": 5001, "type_uid": 7}
        result = prefill_uids(data, FILE_ACTIVITY)
        self.assertEqual(result, data)

    def test_type_uid_uses_supplied_class_uid(self):
        result = prefill_uids({"activity_id": 3, "class_uid": 2002}, FILE_ACTIVITY)
        self.assertEqual(result["type_uid"], 200203)

    def test_no_activity_no_type_uid(self):
        result = prefill_uids({}, FILE_ACTIVITY)
        self.assertNotIn("type_uid", result)
        self.assertEqual(result["class_uid"], 1001)

    def test_activity_other(self):
        result = prefill_uids({"activity_id": 99}, FILE_ACTIVITY)
        self.assertEqual(result["type_uid"], 100199)

    def test_input_not_mutated(self):
        data = {"activity_id": 1}
        prefill_uids(data, FILE_ACTIVITY)
        self.assertEqual(data, {"activity_id": 1})

    def test_non_integer_activity_left_alone(self):
        result = prefill_uids({"activity_id": "one"}, FILE_ACTIVITY)
        self.assertNotIn("type_uid", result)
