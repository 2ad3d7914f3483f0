import unittest

from ocsf_model_compiler.naming import (
    to_constant_name,
    to_enum_member,
    to_field_name,
    to_file_name,
    to_module_name,
    to_type_name,
    to_version_slug,
)


class TestNaming(unittest.TestCase):
    def test_to_type_name(self):
        self.assertEqual(to_type_name("dns_activity"), "DnsActivity")
        self.assertEqual(to_type_name("file"), "File")
        self.assertEqual(to_type_name("_entity"), "Entity")
        self.assertEqual(to_type_name("http_request"), "HttpRequest")
        # Acronyms are not preserved
        self.assertEqual(to_type_name("ldap_person"), "LdapPerson")
        self.assertEqual(to_type_name("SSH_activity"), "SshActivity")

    def test_to_type_name_deterministic(self):
        self.assertEqual(
            to_type_name("network_activity"), to_type_name("network_activity")
        )

    def test_to_enum_member(self):
        self.assertEqual(to_enum_member("Set Attributes"), "SET_ATTRIBUTES")
        self.assertEqual(to_enum_member("TLS/SSL"), "TLS_SSL")
        self.assertEqual(to_enum_member("3DES"), "V_3DES")
        self.assertEqual(to_enum_member("  Unknown  "), "UNKNOWN")
        self.assertEqual(to_enum_member("Read-Only (Cached)"), "READ_ONLY_CACHED")

    def test_to_enum_member_empty(self):
        self.assertEqual(to_enum_member(""), "UNKNOWN")
        self.assertEqual(to_enum_member("---"), "UNKNOWN")

    def test_to_version_slug(self):
        self.assertEqual(to_version_slug("1.7.0"), "v1_7")
        self.assertEqual(to_version_slug("1.5.0"), "v1_5")
        self.assertEqual(to_version_slug("1.6.1"), "v1_6")
        self.assertEqual(to_version_slug("1.0.0-rc.2"), "v1_0")
        self.assertEqual(to_version_slug("1.8-dev"), "v1_8")

    def test_to_file_name(self):
        self.assertEqual(to_file_name("FileActivity"), "file_activity")
        self.assertEqual(to_file_name("File"), "file")
        self.assertEqual(to_file_name("HTTPRequest"), "http_request")
        self.assertEqual(
            to_file_name("FileActivityActivityId"), "file_activity_activity_id"
        )

    def test_to_file_name_inverts_common_type_names(self):
        for name in ["file_activity", "network_endpoint", "dns_query", "process"]:
            self.assertEqual(to_file_name(to_type_name(name)), name)

    def test_to_file_name_is_not_a_full_inverse(self):
        # A segment starting with a digit does not start a new word
        self.assertEqual(to_file_name(to_type_name("file_2")), "file2")

    def test_to_module_name(self):
        self.assertEqual(to_module_name("FileActivity"), "file_activity")
        self.assertEqual(to_module_name("Import"), "import_")
        self.assertEqual(to_module_name("Class"), "class_")

    def test_to_field_name(self):
        self.assertEqual(to_field_name("name"), "name")
        self.assertEqual(to_field_name("from"), "from_")
        self.assertEqual(to_field_name("class"), "class_")
        self.assertEqual(to_field_name("json"), "json_")
        self.assertEqual(to_field_name("schema"), "schema_")
        self.assertEqual(to_field_name("_raw"), "raw_")

    def test_to_constant_name(self):
        self.assertEqual(to_constant_name("activity_id"), "ACTIVITY_ID")
