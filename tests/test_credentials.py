"""
Tests for registry credentials.
"""

import base64

import pytest

from oro_client.credentials import CredentialStore, Credentials, nerf_dart


class TestNerfDart:
    """Test nerf dart computation."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://registry.npmjs.org/", "//registry.npmjs.org/"),
            ("https://registry.npmjs.org", "//registry.npmjs.org/"),
            ("https://registry.npmjs.org/oro", "//registry.npmjs.org/"),
            ("https://user:pw@registry.example.com:8080/npm/pkg?x=1#top", "//registry.example.com:8080/npm/"),
            ("https://registry.example.com:443/npm/", "//registry.example.com/npm/"),
            ("http://localhost:4873/", "//localhost:4873/"),
        ],
    )
    def test_nerf_dart(self, url, expected):
        assert nerf_dart(url) == expected


class TestCredentials:
    """Test credential kinds and headers."""

    def test_token(self):
        assert Credentials.from_token("npm_abc").authorization_header() == "Bearer npm_abc"

    def test_basic(self):
        header = Credentials.basic("alice", "hunter2").authorization_header()

        assert header == "Basic " + base64.b64encode(b"alice:hunter2").decode()

    def test_basic_without_password(self):
        header = Credentials.basic("alice").authorization_header()

        assert base64.b64decode(header.split()[1]) == b"alice:"

    def test_encoded_basic(self):
        assert Credentials.encoded_basic("YWxpY2U6cHc=").authorization_header() == "Basic YWxpY2U6cHc="

    def test_empty_values_rejected(self):
        with pytest.raises(ValueError):
            Credentials.from_token("")
        with pytest.raises(ValueError):
            Credentials.basic("")
        with pytest.raises(ValueError):
            Credentials.encoded_basic("")

    def test_repr_hides_secrets(self):
        assert "npm_secret" not in repr(Credentials.from_token("npm_secret"))

        basic = repr(Credentials.basic("alice", "hunter2"))
        assert "alice" in basic
        assert "hunter2" not in basic


class TestCredentialStore:
    """Test nerf-dart scoped lookup."""

    def test_longest_prefix_wins(self):
        root = Credentials.from_token("root")
        scoped = Credentials.from_token("scoped")
        store = CredentialStore({"https://npm.example.com/": root})
        store.add("https://npm.example.com/private/", scoped)

        assert store.for_url("https://npm.example.com/oro") is root
        assert store.for_url("https://npm.example.com/private/oro") is scoped
        assert len(store) == 2

    def test_nerf_dart_keys(self):
        creds = Credentials.from_token("t")
        store = CredentialStore()
        store.add("//registry.npmjs.org/", creds)

        assert store.for_url("https://registry.npmjs.org/@oro%2Fscoped") is creds
        assert "https://registry.npmjs.org/oro" in store

    def test_other_hosts_get_nothing(self):
        store = CredentialStore({"https://npm.example.com/": Credentials.from_token("t")})

        assert store.for_url("https://evil.example.com/oro") is None
        assert store.for_url("https://npm.example.com.evil.org/oro") is None
        assert "https://registry.npmjs.org/" not in store
        assert 42 not in store

    def test_port_must_match(self):
        store = CredentialStore({"http://localhost:4873/": Credentials.from_token("t")})

        assert store.for_url("http://localhost:4873/oro") is not None
        assert store.for_url("http://localhost:5000/oro") is None
