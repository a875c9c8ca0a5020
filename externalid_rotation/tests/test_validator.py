# -*- coding: utf-8 -*-
import json
import string
import unittest
from unittest import mock

from externalid_rotation import EntropySourceError, ValidationError, ValidationReason, \
    generate_external_id, parse_external_id, serialize_external_id, validate_external_id


class TestValidateExternalId(unittest.TestCase):

    def assertReason(self, value, reason):
        with self.assertRaises(ValidationError) as cm:
            validate_external_id(value)
        self.assertEqual(cm.exception.reason, reason)

    def test_boundaries(self):
        self.assertEqual(validate_external_id("AbCd1234"), "AbCd1234")
        self.assertEqual(validate_external_id("a" * 1224), "a" * 1224)
        self.assertReason("short1", ValidationReason.TOO_SHORT)
        self.assertReason("Abc1234", ValidationReason.TOO_SHORT)
        self.assertReason("a1" * 612 + "b", ValidationReason.TOO_LONG)
        self.assertReason("bad-value!", ValidationReason.INVALID_CHARACTERS)
        self.assertReason("", ValidationReason.MISSING)
        self.assertReason(None, ValidationReason.MISSING)

    def test_wrong_type(self):
        self.assertReason(12345678, ValidationReason.WRONG_TYPE)
        self.assertReason(b"AbCd1234", ValidationReason.WRONG_TYPE)
        self.assertReason(["AbCd1234"], ValidationReason.WRONG_TYPE)

    def test_invalid_characters(self):
        for value in ["AbCd 1234", "AbCd1234\n", "AbCd_1234", "ÀbCd1234", "AbCd１234"]:
            self.assertReason(value, ValidationReason.INVALID_CHARACTERS)

    def test_reason_values(self):
        self.assertEqual([reason.value for reason in ValidationReason],
                         ["Missing", "WrongType", "TooShort", "TooLong", "InvalidCharacters"])

    def test_secret_id_in_error(self):
        with self.assertRaises(ValidationError) as cm:
            validate_external_id("short1", secret_id="s1")
        self.assertEqual(cm.exception.secret_id, "s1")
        self.assertIn("s1", str(cm.exception))
        self.assertIn("TooShort", str(cm.exception))


class TestPayload(unittest.TestCase):

    def test_serialize(self):
        self.assertEqual(json.loads(serialize_external_id("AbCd1234")), {"externalId": "AbCd1234"})

    def test_parse(self):
        self.assertEqual(parse_external_id('{"externalId": "AbCd1234"}'), "AbCd1234")
        self.assertEqual(parse_external_id(b'{"externalId": "AbCd1234"}'), "AbCd1234")
        self.assertIsNone(parse_external_id('{"external_id": "AbCd1234"}'))

    def test_parse_not_json(self):
        for payload in ["AbCd1234", "[1, 2]", None]:
            with self.assertRaises(ValidationError) as cm:
                parse_external_id(payload)
            self.assertEqual(cm.exception.reason, ValidationReason.WRONG_TYPE)


class TestGenerateExternalId(unittest.TestCase):

    def test_shape(self):
        alphabet = set(string.ascii_letters + string.digits)
        for _ in range(200):
            value = generate_external_id()
            self.assertEqual(len(value), 32)
            self.assertTrue(set(value) <= alphabet)
            self.assertEqual(validate_external_id(value), value)

    def test_length(self):
        self.assertEqual(len(generate_external_id(8)), 8)
        self.assertEqual(len(generate_external_id(1224)), 1224)

    def test_no_repeats(self):
        sample = [generate_external_id() for _ in range(10000)]
        self.assertEqual(len(set(sample)), len(sample))

    def test_uses_whole_alphabet(self):
        seen = set("".join(generate_external_id() for _ in range(500)))
        self.assertEqual(seen, set(string.ascii_letters + string.digits))

    def test_entropy_unavailable(self):
        with mock.patch("externalid_rotation.generator.secrets.choice",
                        side_effect=NotImplementedError("no urandom")):
            with self.assertRaises(EntropySourceError) as cm:
                generate_external_id()
        self.assertFalse(cm.exception.retryable)
        self.assertIsInstance(cm.exception.error, NotImplementedError)
