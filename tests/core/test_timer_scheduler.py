import asyncio
from unittest.mock import patch

from surveybot.core.scheduler import TimerScheduler


def test_timer_fires_callback_with_args():
    fired = []

    async def callback(contact_id, version):
        fired.append((contact_id, version))

    async def scenario():
        scheduler = TimerScheduler()
        task = scheduler.schedule("212600000001", 0, callback, "212600000001", 3)
        assert scheduler.pending("212600000001") == 1
        await task
        await asyncio.sleep(0)
        assert scheduler.pending("212600000001") == 0

    asyncio.run(scenario())
    assert fired == [("212600000001", 3)]


@patch("surveybot.core.scheduler.log")
def test_callback_errors_are_logged_not_raised(mock_log):
    async def broken(contact_id):
        raise RuntimeError("boom")

    async def scenario():
        scheduler = TimerScheduler()
        await scheduler.schedule("212600000001", 0, broken, "212600000001")

    asyncio.run(scenario())

    mock_log.assert_called_once()
    assert mock_log.call_args[0][0] == "timer_callback_failed"
    assert mock_log.call_args[1]["errorType"] == "RuntimeError"


@patch("surveybot.core.scheduler.log")
def test_spawn_guards_background_work(mock_log):
    async def broken():
        raise ValueError("bad payload")

    async def scenario():
        scheduler = TimerScheduler()
        await scheduler.spawn(broken(), name="inbound")

    asyncio.run(scenario())

    assert mock_log.call_args[0][0] == "background_task_failed"
    assert mock_log.call_args[1]["task"] == "inbound"


def test_shutdown_cancels_pending_timers():
    fired = []

    async def callback():
        fired.append(True)

    async def scenario():
        scheduler = TimerScheduler()
        task = scheduler.schedule("212600000001", 3600, callback)
        await asyncio.sleep(0)
        await scheduler.shutdown()
        assert task.cancelled()
        assert scheduler.pending("212600000001") == 0

    asyncio.run(scenario())
    assert fired == []
