"""End-to-end tests for FinderService and its sync wrapper."""

import asyncio
import json
import logging

import pytest

from asset_finder import __main__ as cli
from asset_finder.auth.flow import AuthConfig
from asset_finder.config import Config
from asset_finder.core import FinderService, SyncFinderService
from asset_finder.exceptions import AuthAborted, TokenRejected
from asset_finder.picker import FrameContainer, MessageChannel, MessageEvent, PickerOptions
from asset_finder.storage import MemoryStorage, token_key
from asset_finder.storage.credentials import CredentialStore

from fakes import FakeResolver, RemoteDomain, make_token

ORIGIN = "https://x.example"


class ServiceHarness:
    def __init__(self, remote, window, resolver=None):
        self.remote = remote
        self.storage = MemoryStorage()
        self.channel = MessageChannel()
        self.resolver = resolver or FakeResolver(records=[{"id": "42"}])
        self.service = FinderService(
            config=Config(poll_interval=0.005, auth_timeout=5),
            api=remote.api(),
            window=window,
            resolver=self.resolver,
            storage=self.storage,
            channel=self.channel,
        )

    async def send(self, picker, data):
        await self.channel.dispatch(MessageEvent(data, ORIGIN, picker.frame.content_window))


class TestAuthorizeAndStore:
    """Test authorization with token persistence."""

    @pytest.mark.asyncio
    async def test_token_stored_with_margin(self, frozen_time, remote, window):
        harness = ServiceHarness(remote, window)

        token = await harness.service.authorize(AuthConfig(client_id="c1", domain="x.example"))

        item = json.loads(await harness.storage.get_item("asset_finder_token_c1"))
        assert item["expiresAt"] == 1_000 + 3600 - 300
        assert item["data"]["access_token"] == token.access_token
        assert await harness.service.get_token("c1") == token

        frozen_time(1_000 + 3600 - 300)
        assert await harness.service.get_token("c1") is None

    @pytest.mark.asyncio
    async def test_short_lived_token_warns(self, frozen_time, window, caplog):
        harness = ServiceHarness(RemoteDomain(expires_in=200), window)
        await CredentialStore(harness.storage).set(token_key("c1"), make_token(), ttl_seconds=3300)

        with caplog.at_level(logging.WARNING):
            token = await harness.service.authorize(AuthConfig(client_id="c1", domain="x.example"))

        assert token.expires_in == 200
        assert "within the 300s margin" in caplog.text
        assert await harness.service.get_token("c1") is None
        assert await harness.storage.get_item("asset_finder_token_c1") is None

    @pytest.mark.asyncio
    async def test_refresh_replaces_stored_token(self, remote, window, token):
        harness = ServiceHarness(remote, window)

        new_token = await harness.service.refresh(token)

        assert (await harness.service.get_token("c1")).access_token == new_token.access_token

    @pytest.mark.asyncio
    async def test_failed_authorization_stores_nothing(self, window, driver):
        harness = ServiceHarness(RemoteDomain(polls_until_code=None), window)
        asyncio.get_running_loop().call_later(0.05, driver.send, {"aborted": True})

        with pytest.raises(AuthAborted):
            await harness.service.authorize(AuthConfig(client_id="c1", domain="x.example"))

        assert await harness.service.get_token("c1") is None


class TestPickerScenarios:
    """Test the picker against stored credentials."""

    @pytest.mark.asyncio
    async def test_open_picker_authorizes_once(self, remote, window, driver):
        harness = ServiceHarness(remote, window)
        config = AuthConfig(client_id="c1", domain="x.example")

        picker = await harness.service.open_picker(config, FrameContainer())
        again = await harness.service.open_picker(config, FrameContainer())

        assert len(driver.opened) == 1
        assert not picker.mounted
        assert again.mounted
        assert harness.channel.listener_count == 1

    @pytest.mark.asyncio
    async def test_configuration_then_selection(self, remote, window):
        harness = ServiceHarness(remote, window)
        sent = []
        picker = await harness.service.open_picker(
            AuthConfig(client_id="c1", domain="x.example"),
            FrameContainer(),
            PickerOptions(auto_close=True),
            transport=lambda data, origin: sent.append((data, origin)),
        )
        chosen = []
        picker.on_assets_chosen(chosen.append)

        await harness.send(picker, {"configurationRequested": True})
        await harness.send(picker, {"assetsChosen": [{"id": "42"}]})

        assert sent[0][1] == ORIGIN
        assert sent[0][0]["token"] == "access-1"
        assert chosen == [[{"id": "42"}]]
        assert harness.resolver.calls == [("x.example", "access-1", ["42"])]
        assert not picker.mounted

    @pytest.mark.asyncio
    async def test_logout_revokes_and_evicts(self, remote, window, driver):
        harness = ServiceHarness(remote, window)
        config = AuthConfig(client_id="c1", domain="x.example")
        picker = await harness.service.open_picker(config, FrameContainer())
        cancels = []
        picker.on_cancel(lambda: cancels.append(True))

        await harness.send(picker, {"logout": True})

        assert remote.revoked == ["access-1"]
        assert await harness.service.get_token("c1") is None
        assert cancels == [True]

        await harness.service.open_picker(config, FrameContainer())
        assert len(driver.opened) == 2

    @pytest.mark.asyncio
    async def test_logout_evicts_even_if_revoke_fails(self, window):
        harness = ServiceHarness(RemoteDomain(revoke_status=500), window)
        token = make_token()
        await CredentialStore(harness.storage).set(token_key("c1"), token)

        await harness.service.logout(token)

        assert await harness.service.get_token("c1") is None

    @pytest.mark.asyncio
    async def test_rejected_token_is_evicted(self, remote, window):
        harness = ServiceHarness(remote, window, resolver=FakeResolver(error=TokenRejected("401")))
        picker = await harness.service.open_picker(
            AuthConfig(client_id="c1", domain="x.example"), FrameContainer()
        )

        await harness.send(picker, {"assetsChosen": [{"id": "42"}]})

        assert await harness.service.get_token("c1") is None
        assert remote.revoked == []

    @pytest.mark.asyncio
    async def test_close_releases_everything(self, remote, window):
        harness = ServiceHarness(remote, window)
        picker = await harness.service.open_picker(
            AuthConfig(client_id="c1", domain="x.example"), FrameContainer()
        )

        await harness.service.close()

        assert not picker.mounted
        assert harness.channel.listener_count == 0
        assert not window.is_open


class TestSyncFinderService:
    """Test the blocking wrapper."""

    def test_get_token_without_stored_token(self, tmp_path):
        service = SyncFinderService(Config(session_dir=str(tmp_path)))
        try:
            assert service.get_token("c1") is None
        finally:
            service.close()


class TestCommandLine:
    """Test python -m asset_finder."""

    @pytest.mark.asyncio
    async def test_requires_client_id(self, monkeypatch, capsys):
        monkeypatch.setattr(cli, "get_config", lambda: Config())

        assert await cli.authorize() == 2
        assert "FINDER_CLIENT_ID" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_reports_stored_token(self, monkeypatch, capsys, tmp_path):
        config = Config(client_id="c1", session_dir=str(tmp_path))
        monkeypatch.setattr(cli, "get_config", lambda: config)
        service = FinderService(config=config)
        await service._store(make_token())
        await service.close()

        assert await cli.authorize() == 0
        out = capsys.readouterr().out
        assert "x.example" in out
        assert "access-123" not in out
