"""Shared pytest fixtures."""

import pytest

from asset_finder.auth.window import PopupWindow
from asset_finder.storage import credentials

from fakes import FakeWindowDriver, RemoteDomain, make_token


@pytest.fixture(autouse=True)
def fresh_storage(monkeypatch):
    """Every test selects storage from scratch."""
    monkeypatch.setattr(credentials, "_storage", None)


@pytest.fixture
def frozen_time(monkeypatch):
    """Pin the credential store clock; returns a setter."""
    now = {"value": 1_000}
    monkeypatch.setattr(credentials, "_current_time", lambda: now["value"])

    def set_time(value: int) -> None:
        now["value"] = value

    return set_time


@pytest.fixture
def token():
    return make_token()


@pytest.fixture
def driver():
    return FakeWindowDriver()


@pytest.fixture
def window(driver):
    return PopupWindow(driver, watch_interval=0.01)


@pytest.fixture
def remote():
    return RemoteDomain()
