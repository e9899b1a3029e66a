"""Tests for the hashing module."""

from oro_client.hashing import cache_key, content_hash


class TestContentHash:
    """Tests for content_hash function."""

    def test_deterministic_same_dict(self) -> None:
        """Same dict produces same hash."""
        obj = {"a": 1, "b": 2}
        assert content_hash(obj) == content_hash(obj)

    def test_deterministic_different_key_order(self) -> None:
        """Dict order doesn't affect hash."""
        a = {"b": 1, "a": {"z": 3, "y": 2}}
        b = {"a": {"y": 2, "z": 3}, "b": 1}
        assert content_hash(a) == content_hash(b)

    def test_different_content_different_hash(self) -> None:
        """Different content produces different hash."""
        assert content_hash({"a": 1}) != content_hash({"a": 2})

    def test_returns_64_char_hex(self) -> None:
        """Hash is 64 character hex string."""
        result = content_hash({"test": "data"})
        assert len(result) == 64
        assert all(c in "0123456789abcdef" for c in result)


class TestCacheKey:
    """Tests for cache_key function."""

    URL = "https://registry.npmjs.org/@oro%2Fscoped"

    def test_consistent_output(self) -> None:
        """Same inputs produce same cache key."""
        assert cache_key("GET", self.URL) == cache_key("GET", self.URL)

    def test_method_is_case_insensitive(self) -> None:
        assert cache_key("get", self.URL) == cache_key("GET", self.URL)

    def test_different_method_different_key(self) -> None:
        assert cache_key("GET", self.URL) != cache_key("HEAD", self.URL)

    def test_different_url_different_key(self) -> None:
        """Escaped and unescaped URLs are distinct resources."""
        assert cache_key("GET", self.URL) != cache_key("GET", "https://registry.npmjs.org/@oro/scoped")
