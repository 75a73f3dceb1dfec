from liqradar.alert.throttle import SignalThrottle

NOW = 1706600000000


def test_cooldown_per_asset_and_kind():
    throttle = SignalThrottle(cooldown_seconds=300)

    assert throttle.check_and_record("BTC", "long", NOW)
    assert not throttle.check_and_record("BTC", "long", NOW + 60_000)
    # different kind and asset are independent
    assert throttle.check_and_record("BTC", "short", NOW + 60_000)
    assert throttle.check_and_record("ETH", "long", NOW + 60_000)
    # cooldown is inclusive at the boundary
    assert throttle.check_and_record("BTC", "long", NOW + 300_000)


def test_rejected_signal_does_not_extend_cooldown():
    throttle = SignalThrottle(cooldown_seconds=10)
    throttle.record("SOL", "long", NOW)

    assert not throttle.check_and_record("SOL", "long", NOW + 9_000)
    assert throttle.allow("SOL", "long", NOW + 10_000)


def test_stale_entries_are_purged():
    throttle = SignalThrottle(cooldown_seconds=1)
    throttle.record("OLD", "long", NOW)
    throttle.record("NEW", "long", NOW + 60_000)

    assert len(throttle) == 1


def test_reset():
    throttle = SignalThrottle(cooldown_seconds=60)
    throttle.record("BTC", "long", NOW)

    throttle.reset()

    assert throttle.allow("BTC", "long", NOW)
