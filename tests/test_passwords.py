"""
Unit tests for password hashing / verification.
"""

from karak import passwords
from karak.passwords import hash_password, verify_password


def test_hash_is_salted_argon2():
    first, second = hash_password("StrongP@ssw0rd!"), hash_password("StrongP@ssw0rd!")
    assert first.startswith("$argon2id$")
    assert first != second


def test_verify_roundtrip():
    hashed = hash_password("StrongP@ssw0rd!")
    assert verify_password("StrongP@ssw0rd!", hashed)
    assert not verify_password("wrong", hashed)


class SpyHasher:
    def __init__(self, real):
        self.real = real
        self.verified = []

    def hash(self, password):
        return self.real.hash(password)

    def verify(self, target, password):
        self.verified.append(target)
        return self.real.verify(target, password)


def test_missing_hash_still_runs_decoy_verification(monkeypatch):
    spy = SpyHasher(passwords._hasher)
    monkeypatch.setattr(passwords, "_hasher", spy)

    assert verify_password("", None) is False
    assert verify_password("anything", None) is False
    assert len(spy.verified) == 2
    assert spy.verified[0] == passwords._decoy_hash()


def test_malformed_hash_fails_closed():
    assert verify_password("secret", "not-a-phc-string") is False
