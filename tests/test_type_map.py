import unittest

from ocsf_model_compiler.type_map import (
    BOOLEAN,
    FLOAT,
    INTEGER,
    JSON,
    PERMISSIVE,
    STRING,
    is_primitive_type,
    map_type,
)


class TestTypeMap(unittest.TestCase):
    def test_primitive_types(self):
        self.assertEqual(map_type("string_t"), STRING)
        self.assertEqual(map_type("integer_t"), INTEGER)
        self.assertEqual(map_type("long_t"), INTEGER)
        self.assertEqual(map_type("boolean_t"), BOOLEAN)
        self.assertEqual(map_type("float_t"), FLOAT)
        self.assertEqual(map_type("double_t"), FLOAT)
        self.assertEqual(FLOAT.validator, "StrictFloat")
        self.assertEqual(map_type("json_t"), JSON)
        self.assertEqual(map_type("bytestring_t"), STRING)

    def test_timestamp_and_port_are_integers(self):
        self.assertEqual(map_type("timestamp_t"), INTEGER)
        self.assertEqual(map_type("port_t"), INTEGER)

    def test_string_subtypes(self):
        for ocsf_type in [
            "ip_t",
            "mac_t",
            "email_t",
            "url_t",
            "hostname_t",
            "uuid_t",
            "subnet_t",
            "file_name_t",
            "file_path_t",
            "process_name_t",
            "username_t",
            "file_hash_t",
            "resource_uid_t",
            "path_t",
            "fingerprint_t",
            "datetime_t",
            "country_t",
            "cidr_t",
        ]:
            with self.subTest(ocsf_type=ocsf_type):
                self.assertEqual(map_type(ocsf_type).validator, "StrictStr")
                self.assertEqual(map_type(ocsf_type).static, "str")

    def test_unknown_type_is_permissive(self):
        self.assertEqual(map_type("magic_t"), PERMISSIVE)
        self.assertEqual(map_type(""), PERMISSIVE)
        self.assertEqual(map_type("magic_t"), ("Any", "Any"))

    def test_is_primitive_type(self):
        self.assertTrue(is_primitive_type("string_t"))
        self.assertTrue(is_primitive_type("magic_t"))
        self.assertFalse(is_primitive_type("file"))
        self.assertFalse(is_primitive_type("_entity"))
