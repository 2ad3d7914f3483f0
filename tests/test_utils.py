import shutil
import tempfile
import unittest
from pathlib import Path

from ocsf_model_compiler.exceptions import SchemaException
from ocsf_model_compiler.jsonish import read_json_object_file, read_structured_items
from ocsf_model_compiler.utils import (
    category_scoped_class_uid,
    deep_merge,
    is_hidden_class,
    strip_html,
)


class TestUtils(unittest.TestCase):
    def test_deep_merge(self):
        dest = {"a": {"b": 1, "c": [1, 2]}, "d": "x"}
        deep_merge(dest, {"a": {"c": [3], "e": True}, "f": None})
        self.assertEqual(
            dest, {"a": {"b": 1, "c": [3], "e": True}, "d": "x", "f": None}
        )

    def test_strip_html(self):
        self.assertEqual(
            strip_html("The <b>normalized</b>\n  event time &amp; date."),
            "The normalized event time & date.",
        )

    def test_category_scoped_class_uid(self):
        self.assertEqual(category_scoped_class_uid(4, 1), 4001)
        self.assertEqual(category_scoped_class_uid(0, 0), 0)

    def test_is_hidden_class(self):
        self.assertFalse(is_hidden_class("base_event", {}))
        self.assertTrue(is_hidden_class("system", {"category": "system"}))
        self.assertFalse(is_hidden_class("file_activity", {"uid": 1}))


class TestJsonish(unittest.TestCase):
    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_non_object_file(self):
        path = self.temp_dir / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with self.assertRaisesRegex(TypeError, "JSON array value"):
            read_json_object_file(path)

    def test_structured_items(self):
        (self.temp_dir / "objects" / "nested").mkdir(parents=True)
        (self.temp_dir / "objects" / "b.json").write_text(
            '{"name": "b"}', encoding="utf-8"
        )
        (self.temp_dir / "objects" / "nested" / "a.json").write_text(
            '{"name": "a"}', encoding="utf-8"
        )
        items = read_structured_items(self.temp_dir, "objects")
        self.assertEqual(sorted(items), ["a", "b"])

    def test_structured_item_name_collision(self):
        (self.temp_dir / "objects").mkdir()
        for file_name in ("one.json", "two.json"):
            (self.temp_dir / "objects" / file_name).write_text(
                '{"name": "same"}', encoding="utf-8"
            )
        with self.assertRaisesRegex(SchemaException, 'Collision of "name"'):
            read_structured_items(self.temp_dir, "objects")
