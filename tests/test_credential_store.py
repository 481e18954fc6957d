"""Tests for the Credential model and CredentialStore."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from mailscan.auth import Credential, CredentialStore, ProviderKind

NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


class TestCredential:
    """Tests for Credential expiry and serialization."""

    def test_future_expiry_is_not_expired(self):
        cred = Credential(access_token="a", expiry=NOW + timedelta(minutes=5))
        assert not cred.is_expired(NOW)

    def test_past_expiry_is_expired(self):
        cred = Credential(access_token="a", expiry=NOW - timedelta(seconds=1))
        assert cred.is_expired(NOW)

    def test_missing_expiry_is_treated_as_usable(self):
        cred = Credential(access_token="a")
        assert not cred.is_expired(NOW)

    def test_to_dict(self):
        cred = Credential(
            access_token="access",
            refresh_token="refresh",
            expiry=NOW,
            token_type="Bearer",
        )
        assert cred.to_dict() == {
            "access_token": "access",
            "refresh_token": "refresh",
            "expiry": "2024-01-15T12:00:00+00:00",
            "token_type": "Bearer",
        }

    def test_from_dict_roundtrip(self):
        cred = Credential(access_token="access", refresh_token="r", expiry=NOW)
        assert Credential.from_dict(cred.to_dict()) == cred

    def test_from_dict_legacy_expiry_date_millis(self):
        millis = int(NOW.timestamp() * 1000)
        cred = Credential.from_dict({"access_token": "a", "expiry_date": millis})
        assert cred.expiry == NOW

    def test_from_dict_naive_expiry_is_utc(self):
        cred = Credential.from_dict({"access_token": "a", "expiry": "2024-01-15T12:00:00"})
        assert cred.expiry == NOW

    def test_from_dict_requires_access_token(self):
        with pytest.raises(KeyError):
            Credential.from_dict({"refresh_token": "r"})


class TestProviderKind:
    def test_yahoo_host(self):
        assert ProviderKind.from_host("imap.mail.yahoo.com") is ProviderKind.YAHOO

    def test_gmail_host(self):
        assert ProviderKind.from_host("imap.gmail.com") is ProviderKind.GOOGLE

    def test_unknown_host_defaults_to_google(self):
        assert ProviderKind.from_host("mail.example.com") is ProviderKind.GOOGLE


class TestCredentialStore:
    """Tests for CredentialStore file handling."""

    def test_load_missing_file(self, tmp_path):
        store = CredentialStore(tmp_path / "tokens.json")
        assert store.load() is None

    def test_save_then_load(self, tmp_path):
        store = CredentialStore(tmp_path / "tokens.json")
        cred = Credential(access_token="a", refresh_token="r", expiry=NOW, token_type="Bearer")
        store.save(cred)
        assert store.load() == cred

    def test_saved_file_is_one_json_object(self, tmp_path):
        path = tmp_path / "tokens.json"
        CredentialStore(path).save(Credential(access_token="a"))
        data = json.loads(path.read_text())
        assert data["access_token"] == "a"
        assert set(data) == {"access_token", "refresh_token", "expiry", "token_type"}

    def test_corrupt_file_loads_as_none(self, tmp_path):
        path = tmp_path / "tokens.json"
        path.write_text("{not json")
        assert CredentialStore(path).load() is None

    def test_wrong_shape_loads_as_none(self, tmp_path):
        path = tmp_path / "tokens.json"
        path.write_text(json.dumps(["a", "b"]))
        assert CredentialStore(path).load() is None

    def test_delete(self, tmp_path):
        path = tmp_path / "tokens.json"
        store = CredentialStore(path)
        store.save(Credential(access_token="a"))
        store.delete()
        assert not path.exists()

    def test_delete_missing_file_is_noop(self, tmp_path):
        CredentialStore(tmp_path / "tokens.json").delete()
