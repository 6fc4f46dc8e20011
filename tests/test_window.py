"""Tests for signals, the single-winner race and the popup controller."""

import asyncio

import pytest

from asset_finder.auth.race import first_completed
from asset_finder.auth.window import PopupOptions, PopupWindow, Signal, WindowState
from asset_finder.exceptions import AuthPopupAlreadyOpen

from fakes import FakeWindowDriver


class FailingDriver(FakeWindowDriver):
    async def open(self, url, options, on_message):
        raise OSError("no display")


class TestSignal:
    """Test one-shot signals."""

    def test_fires_once(self):
        signal = Signal("done")
        received = []
        signal.subscribe(received.append)

        assert signal.emit("first") is True
        assert signal.emit("second") is False
        assert received == ["first"]
        assert signal.listener_count == 0

    def test_unsubscribe(self):
        signal = Signal("done")
        received = []
        unsubscribe = signal.subscribe(received.append)

        unsubscribe()
        unsubscribe()
        signal.emit(1)

        assert received == []

    @pytest.mark.asyncio
    async def test_wait_after_fired_returns_value(self):
        signal = Signal("done")
        signal.emit("value")

        assert await signal.wait() == "value"

    @pytest.mark.asyncio
    async def test_cancelled_wait_unsubscribes(self):
        signal = Signal("done")
        waiter = asyncio.ensure_future(signal.wait())
        await asyncio.sleep(0)
        assert signal.listener_count == 1

        waiter.cancel()
        await asyncio.gather(waiter, return_exceptions=True)

        assert signal.listener_count == 0


class TestFirstCompleted:
    """Test the single-winner race."""

    @pytest.mark.asyncio
    async def test_losers_are_cancelled(self):
        cancelled = []

        async def slow():
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append("slow")
                raise

        async def fast():
            return "done"

        winner, value = await first_completed({"slow": slow(), "fast": fast()})

        assert (winner, value) == ("fast", "done")
        assert cancelled == ["slow"]

    @pytest.mark.asyncio
    async def test_first_listed_wins_ties(self):
        loop = asyncio.get_running_loop()
        first, second = loop.create_future(), loop.create_future()
        first.set_result("a")
        second.set_result("b")

        assert await first_completed({"first": first, "second": second}) == ("first", "a")

    @pytest.mark.asyncio
    async def test_timeout(self):
        signal = Signal("never")

        with pytest.raises(asyncio.TimeoutError):
            await first_completed({"never": signal.wait()}, timeout=0.01)

        assert signal.listener_count == 0

    @pytest.mark.asyncio
    async def test_winner_exception_propagates(self):
        async def boom():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await first_completed({"boom": boom(), "idle": asyncio.sleep(10)})


class TestPopupWindow:
    """Test the secondary-window controller."""

    @pytest.mark.asyncio
    async def test_second_open_rejected(self, window, driver):
        await window.open("https://a.example")

        with pytest.raises(AuthPopupAlreadyOpen) as exc_info:
            await window.open("https://b.example")

        assert exc_info.value.code == "ERR_POPUP_OPEN"
        assert driver.opened == ["https://a.example"]
        await window.close()

    @pytest.mark.asyncio
    async def test_close_is_idempotent_and_frees_window(self, window, driver):
        await window.open("https://a.example")

        await window.close()
        await window.close()
        assert window.state is WindowState.CLOSED

        await window.open("https://b.example", PopupOptions(title="Again"))
        assert window.is_open
        await window.close()

    @pytest.mark.asyncio
    async def test_driver_failure_leaves_window_closed(self):
        window = PopupWindow(FailingDriver(), watch_interval=0.01)

        with pytest.raises(OSError):
            await window.open("https://a.example")

        assert window.state is WindowState.CLOSED

    @pytest.mark.asyncio
    async def test_messages_map_to_signals(self, window, driver):
        await window.open("https://a.example")

        driver.send({"domain": "x.example"})
        driver.send({"success": True})
        driver.send({"aborted": True})
        driver.send("not a dict")

        assert await window.domain_submitted.wait() == "x.example"
        assert window.auth_succeeded.fired
        assert window.auth_cancelled.fired
        assert not window.auth_aborted.fired
        await window.close()

    @pytest.mark.asyncio
    async def test_user_closing_window_fires_aborted(self, window, driver):
        await window.open("https://a.example")

        driver.user_closes()

        assert await asyncio.wait_for(window.auth_aborted.wait(), timeout=1) is True
        await window.close()

    @pytest.mark.asyncio
    async def test_signals_reset_on_reopen(self, window, driver):
        await window.open("https://a.example")
        driver.send({"aborted": True})
        await window.close()

        await window.open("https://a.example")

        assert not window.auth_cancelled.fired
        await window.close()

    @pytest.mark.asyncio
    async def test_messages_after_close_ignored(self, window, driver):
        await window.open("https://a.example")
        signal = window.auth_cancelled
        await window.close()

        driver.send({"aborted": True})

        assert not signal.fired

    @pytest.mark.asyncio
    async def test_navigate_requires_open_window(self, window):
        with pytest.raises(RuntimeError):
            await window.navigate_to("https://a.example")

    @pytest.mark.asyncio
    async def test_post_message_skipped_when_closed(self, window, driver):
        await window.post_message({"domainError": "x"})
        await window.open("https://a.example")
        await window.post_message({"domainError": "y"})
        await window.close()

        assert driver.posted == [{"domainError": "y"}]
