import asyncio

from session_keeper.cache.manager import GroupCacheManager


def _fill(manager, session_id, count):
    return [manager.set(session_id, f"G{n}@g.us", {"subject": "x"}) for n in range(1, count + 1)]


def test_group_cap_holds_and_bytes_follow_evictions(cache_settings):
    manager = GroupCacheManager(cache_settings(max_groups=3))

    records = _fill(manager, "S1", 5)

    entry = manager.registry.get("S1")
    assert manager.list_jids("S1") == ["G3@g.us", "G4@g.us", "G5@g.us"]
    assert entry.approx_bytes == sum(r.approx_size_bytes for r in records[2:])
    assert manager.clean_all_sessions() == 0


def test_clean_session_trims_to_byte_budget(cache_settings):
    manager = GroupCacheManager(
        cache_settings(per_session_max_bytes=300), clock=lambda: 1234.0
    )
    _fill(manager, "S1", 5)

    evicted = manager.clean_session("S1")

    assert evicted == 3
    assert manager.list_jids("S1") == ["G4@g.us", "G5@g.us"]
    stats = manager.session_stats("S1")
    assert stats.approx_bytes == 272
    assert stats.last_evicted == 3
    assert stats.last_clean_at == 1234.0
    assert manager.clean_session("missing") == 0


def test_full_pass_corrects_drift(cache_settings):
    manager = GroupCacheManager(cache_settings())
    records = _fill(manager, "S1", 2)
    manager.registry.get("S1").approx_bytes = 99999

    report = manager.janitor.run_full_pass()

    assert report.ok
    assert manager.session_stats("S1").approx_bytes == sum(r.approx_size_bytes for r in records)


def test_failing_session_does_not_stop_the_pass(cache_settings, monkeypatch):
    reports = []
    manager = GroupCacheManager(
        cache_settings(per_session_max_bytes=300), observer=reports.append
    )
    _fill(manager, "bad", 1)
    _fill(manager, "good", 5)

    accountant = manager.janitor._accountant
    original = accountant.enforce

    def flaky(entry):
        if entry.session_id == "bad":
            raise RuntimeError("corrupt entry")
        return original(entry)

    monkeypatch.setattr(accountant, "enforce", flaky)

    report = manager.janitor.run_full_pass()

    assert report.sessions == 2
    assert report.failures == [("bad", "corrupt entry")]
    assert report.evicted == 3
    assert reports == [report]


def test_observer_errors_are_contained(cache_settings):
    def observer(report):
        raise ValueError("observer broke")

    manager = GroupCacheManager(cache_settings(), observer=observer)
    _fill(manager, "S1", 1)

    assert manager.janitor.run_budget_pass().ok


def test_budget_pass_only_when_interval_differs(cache_settings):
    same = GroupCacheManager(cache_settings(prune_interval=60, auto_clean_interval=60))
    off = GroupCacheManager(cache_settings(prune_interval=60, auto_clean_interval=0))
    fast = GroupCacheManager(cache_settings(prune_interval=60, auto_clean_interval=5))

    assert same.janitor.budget_pass_enabled is False
    assert off.janitor.budget_pass_enabled is False
    assert fast.janitor.budget_pass_enabled is True


def test_start_runs_both_passes_until_shutdown(cache_settings):
    reports = []
    manager = GroupCacheManager(
        cache_settings(prune_interval=0.05, auto_clean_interval=0.02),
        observer=reports.append,
    )
    _fill(manager, "S1", 1)

    async def run():
        await manager.start()
        await manager.start()
        assert manager.janitor.running
        await asyncio.sleep(0.2)
        await manager.shutdown()

    asyncio.run(run())

    names = {r.pass_name for r in reports}
    assert names == {"full", "budget"}
    assert manager.janitor.running is False
    assert manager.janitor.last_report("full").pass_name == "full"
    assert manager.janitor.last_report("budget").pass_name == "budget"
