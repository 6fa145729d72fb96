"""Tests for the account password hashing helpers."""

from __future__ import annotations

import unittest

from portal.security import hash_password, verify_password


class PasswordHashingTests(unittest.TestCase):
    def test_hash_and_verify(self) -> None:
        hashed = hash_password("supersecurepassword")
        self.assertTrue(hashed.startswith("$pbkdf2-sha256$"))
        self.assertNotIn("supersecurepassword", hashed)
        self.assertTrue(verify_password("supersecurepassword", hashed))
        self.assertFalse(verify_password("incorrect", hashed))

    def test_hashes_are_salted(self) -> None:
        self.assertNotEqual(hash_password("same-password"), hash_password("same-password"))

    def test_malformed_hash_never_verifies(self) -> None:
        self.assertFalse(verify_password("anything", "not-a-hash"))
        self.assertFalse(verify_password("anything", ""))
        self.assertFalse(verify_password("", hash_password("anything")))

    def test_empty_password_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            hash_password("")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
