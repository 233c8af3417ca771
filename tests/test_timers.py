import asyncio

from citizenship_coach.session.timers import CheckInTimer, InactivityWatchdog


async def test_check_in_fires_once_after_rearm():
    fired = []
    timer = CheckInTimer(0.05, lambda: fired.append(1))
    timer.arm()
    timer.arm()
    assert timer.pending
    await asyncio.sleep(0.15)
    assert fired == [1]
    assert not timer.pending


async def test_check_in_cancel():
    fired = []
    timer = CheckInTimer(0.05, lambda: fired.append(1))
    timer.arm()
    timer.cancel()
    timer.cancel()
    await asyncio.sleep(0.1)
    assert fired == []


async def test_check_in_accepts_coroutine_callback():
    fired = asyncio.Event()

    async def on_fire():
        fired.set()

    timer = CheckInTimer(0.01, on_fire)
    timer.arm()
    await asyncio.wait_for(fired.wait(), timeout=1)


async def test_watchdog_warns_then_times_out():
    events = []
    dog = InactivityWatchdog(0.05, 0.15, lambda: events.append("warning"), lambda: events.append("timeout"))
    dog.start()
    await asyncio.sleep(0.3)
    assert events == ["warning", "timeout"]
    assert not dog.running


async def test_watchdog_reset_by_activity():
    events = []
    dog = InactivityWatchdog(0.1, 0.3, lambda: events.append("warning"), lambda: events.append("timeout"))
    dog.start()
    await asyncio.sleep(0.06)
    assert dog.record_activity(user_originated=False)
    await asyncio.sleep(0.06)
    assert events == []
    dog.stop()


async def test_only_user_activity_ends_warning_period():
    events = []
    dog = InactivityWatchdog(0.05, 0.5, lambda: events.append("warning"), lambda: events.append("timeout"))
    dog.start()
    await asyncio.sleep(0.1)
    assert dog.in_warning_period
    assert dog.record_activity(user_originated=False) is False
    assert dog.in_warning_period
    assert dog.record_activity(user_originated=True) is True
    assert not dog.in_warning_period
    dog.stop()
    assert events == ["warning"]


def test_activity_ignored_when_stopped():
    dog = InactivityWatchdog(1, 2, lambda: None, lambda: None)
    assert dog.record_activity(user_originated=True) is False
