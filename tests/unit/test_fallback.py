import asyncio

from services.fallback import Outcome, SettleTask, Strategy, attempt_with_fallback, settle_all


async def _value(v, delay=0):
    if delay:
        await asyncio.sleep(delay)
    return v


async def _boom():
    raise RuntimeError("boom")


async def test_primary_success():
    outcome = await attempt_with_fallback(lambda: _value("primary"), lambda: "fallback", name="x")
    assert outcome == Outcome("x", "primary", Strategy.PRIMARY)


async def test_primary_failure_uses_fallback():
    outcome = await attempt_with_fallback(_boom, lambda: "fallback", name="x")
    assert outcome.value == "fallback"
    assert outcome.strategy == Strategy.FALLBACK
    assert "boom" in outcome.error


async def test_primary_timeout_uses_fallback():
    outcome = await attempt_with_fallback(
        lambda: _value("late", delay=1), lambda: "fallback", name="x", timeout=0.01
    )
    assert outcome.value == "fallback"
    assert "timed out" in outcome.error


async def test_missing_primary_goes_straight_to_fallback():
    outcome = await attempt_with_fallback(None, lambda: 42, name="x")
    assert outcome == Outcome("x", 42, Strategy.FALLBACK)


async def test_settle_all_substitutes_defaults_and_keeps_order():
    tasks = [
        SettleTask("ok", lambda: _value("fine"), timeout=1, default=lambda: "d1"),
        SettleTask("slow", lambda: _value("late", delay=1), timeout=0.01, default=lambda: "d2"),
        SettleTask("broken", _boom, timeout=1, default=lambda: "d3"),
    ]
    outcomes = await settle_all(tasks)
    assert [o.name for o in outcomes] == ["ok", "slow", "broken"]
    assert [o.value for o in outcomes] == ["fine", "d2", "d3"]
    assert [o.strategy for o in outcomes] == [Strategy.PRIMARY, Strategy.DEFAULT, Strategy.DEFAULT]


async def test_settle_all_keeps_inner_outcome():
    async def inner():
        return Outcome("inner", "fb", Strategy.FALLBACK)

    (outcome,) = await settle_all([SettleTask("inner", inner, timeout=1)])
    assert outcome.strategy == Strategy.FALLBACK


async def test_settle_all_is_concurrent():
    loop = asyncio.get_running_loop()
    start = loop.time()
    await settle_all([
        SettleTask(str(i), lambda: _value(i, delay=0.2), timeout=5) for i in range(5)
    ])
    assert loop.time() - start < 0.9
