from StudyCore.core.clock import ManualTicker, fmt_hms, fmt_short


def test_fmt_hms():
    assert fmt_hms(0) == "00:00:00"
    assert fmt_hms(3725) == "01:02:05"


def test_fmt_short():
    assert fmt_short(59) == "0m"
    assert fmt_short(300) == "5m"
    assert fmt_short(3900) == "1h 5m"


def test_manual_ticker_fires_only_while_active():
    ticker = ManualTicker()
    seen = []
    ticker.timeout.connect(lambda: seen.append(1))
    ticker.fire(3)
    assert seen == []
    ticker.start()
    assert ticker.isActive()
    ticker.fire(3)
    ticker.stop()
    ticker.fire(2)
    assert len(seen) == 3
