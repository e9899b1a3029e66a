"""
Tests for registry URL helpers.
"""

import pytest
from yarl import URL

from oro_client.errors import InvalidUrlError
from oro_client.urls import (
    escape_package_name,
    host_matches_no_proxy,
    join_registry,
    packument_url,
    parse_registry_url,
    parse_url,
    resolve_url,
    split_domains,
)

NPM = URL("https://registry.npmjs.org/")
PREFIXED = URL("https://npm.example.com/npm/")


class TestParseUrl:
    """Test URL parsing."""

    def test_absolute_url(self):
        url = parse_url("  https://registry.npmjs.org/oro ")

        assert url.host == "registry.npmjs.org"
        assert url.path == "/oro"

    def test_url_instance_passthrough(self):
        assert parse_url(NPM) is NPM

    @pytest.mark.parametrize("value", ["registry.npmjs.org", "/oro", "ftp://example.com/", "file:///tmp/x"])
    def test_rejects_non_http(self, value):
        with pytest.raises(InvalidUrlError):
            parse_url(value)


class TestParseRegistryUrl:
    """Test registry base normalization."""

    def test_adds_trailing_slash(self):
        assert str(parse_registry_url("https://npm.example.com/npm")) == "https://npm.example.com/npm/"

    def test_bare_host(self):
        assert str(parse_registry_url("https://registry.npmjs.org")) == "https://registry.npmjs.org/"

    def test_drops_query_and_fragment(self):
        url = parse_registry_url("https://npm.example.com/npm/?token=x#frag")

        assert str(url) == "https://npm.example.com/npm/"


class TestPackageNames:
    """Test package name escaping and packument URLs."""

    def test_escape_unscoped(self):
        assert escape_package_name("lodash") == "lodash"

    def test_escape_scoped(self):
        assert escape_package_name("@oro/scoped") == "@oro%2Fscoped"

    def test_escape_empty(self):
        with pytest.raises(ValueError):
            escape_package_name("  ")

    def test_packument_url(self):
        assert str(packument_url(NPM, "@oro/scoped")) == "https://registry.npmjs.org/@oro%2Fscoped"

    def test_packument_url_keeps_prefix(self):
        assert str(packument_url(PREFIXED, "lodash")) == "https://npm.example.com/npm/lodash"


class TestJoinAndResolve:
    """Test joining relative paths onto a registry."""

    def test_join_strips_leading_slash(self):
        assert str(join_registry(PREFIXED, "/-/whoami")) == "https://npm.example.com/npm/-/whoami"

    def test_join_keeps_encoding(self):
        url = join_registry(NPM, "-/user/org.couchdb.user:a%20b")

        assert url.raw_path == "/-/user/org.couchdb.user:a%20b"

    def test_resolve_relative(self):
        url = resolve_url(PREFIXED, "oro/-/oro-1.0.0.tgz")

        assert str(url) == "https://npm.example.com/npm/oro/-/oro-1.0.0.tgz"

    def test_resolve_absolute(self):
        url = resolve_url(NPM, "https://cdn.example.com/oro-1.0.0.tgz")

        assert url.host == "cdn.example.com"

    def test_resolve_absolute_must_be_http(self):
        with pytest.raises(InvalidUrlError):
            resolve_url(NPM, "ftp://cdn.example.com/oro-1.0.0.tgz")


class TestNoProxy:
    """Test no-proxy matching."""

    @pytest.mark.parametrize(
        "host,domains,expected",
        [
            ("registry.npmjs.org", ["npmjs.org"], True),
            ("registry.npmjs.org", [".npmjs.org"], True),
            ("npmjs.org", ["npmjs.org"], True),
            ("evilnpmjs.org", ["npmjs.org"], False),
            ("localhost", ["localhost:4873"], True),
            ("anything.example", ["*"], True),
            ("Registry.NPMJS.org.", ["npmjs.org"], True),
            ("registry.npmjs.org", ["", " "], False),
            (None, ["*"], False),
        ],
    )
    def test_host_matches(self, host, domains, expected):
        assert host_matches_no_proxy(host, domains) is expected

    def test_split_domains(self):
        assert split_domains("localhost, .internal ,,") == ["localhost", ".internal"]
        assert split_domains(["a", " ", "b "]) == ["a", "b"]
        assert split_domains(None) == []
