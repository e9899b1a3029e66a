"""
Tests for the sync wrappers.
"""

import pytest

from oro_client import CorgiPackument, OroClient, Packument, corgi_packument_sync, packument_sync


class FakeClient:
    """Stands in for OroClient; records calls and closes."""

    def __init__(self):
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    async def packument(self, name: str) -> Packument:
        self.calls.append(("packument", name))
        return Packument(name=name)

    async def corgi_packument(self, name: str) -> CorgiPackument:
        self.calls.append(("corgi_packument", name))
        return CorgiPackument(name=name, modified="2024-01-01T00:00:00.000Z")

    async def close(self) -> None:
        self.closed = True


class TestSyncWrappers:
    """Sync wrappers run the async client on a private loop."""

    def test_packument_sync(self):
        fake = FakeClient()

        result = packument_sync("oro-test", client=fake)

        assert result.name == "oro-test"
        assert fake.calls == [("packument", "oro-test")]
        assert fake.closed

    def test_corgi_packument_sync(self):
        fake = FakeClient()

        result = corgi_packument_sync("@oro/scoped", client=fake)

        assert isinstance(result, CorgiPackument)
        assert result.modified == "2024-01-01T00:00:00.000Z"
        assert fake.calls == [("corgi_packument", "@oro/scoped")]

    def test_default_client_from_settings(self, monkeypatch):
        fake = FakeClient()
        monkeypatch.setattr(OroClient, "from_settings", lambda *args, **kwargs: fake)

        packument_sync("oro-test")

        assert fake.calls == [("packument", "oro-test")]
        assert fake.closed

    def test_client_closed_on_error(self):
        class BrokenClient(FakeClient):
            async def packument(self, name: str) -> Packument:
                raise ValueError("boom")

        broken = BrokenClient()

        with pytest.raises(ValueError, match="boom"):
            packument_sync("oro-test", client=broken)

        assert broken.closed

    async def test_rejects_running_loop(self):
        with pytest.raises(RuntimeError, match="await client.packument"):
            packument_sync("oro-test", client=FakeClient())

    async def test_corgi_rejects_running_loop(self):
        with pytest.raises(RuntimeError, match="cannot be called inside an async context"):
            corgi_packument_sync("oro-test", client=FakeClient())
