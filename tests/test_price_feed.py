import threading

from lighter_mm.app.price_feed import MidPriceFeed


def lvl(price):
    return {"price": price, "size": "1"}


class TestMidPriceFeed:
    def test_empty_feed_is_not_fresh(self, clock):
        feed = MidPriceFeed(now_fn=clock)
        assert feed.read() == (0.0, False)

    def test_observe_stores_mid(self, clock):
        feed = MidPriceFeed(now_fn=clock)
        feed.observe([lvl("99.0")], [lvl("101.0")])
        assert feed.read() == (100.0, True)

    def test_accepts_list_levels(self, clock):
        feed = MidPriceFeed(now_fn=clock)
        feed.observe([["10", "1"]], [["12", "1"]])
        assert feed.read() == (11.0, True)

    def test_sample_older_than_window_is_stale(self, clock):
        feed = MidPriceFeed(now_fn=clock)
        feed.observe([lvl("99")], [lvl("101")])
        clock.advance(9.9)
        assert feed.read()[1] is True
        clock.advance(0.1)
        assert feed.read() == (0.0, False)
        clock.advance(1000)
        assert feed.read() == (0.0, False)

    def test_empty_side_is_ignored(self, clock):
        feed = MidPriceFeed(now_fn=clock)
        feed.observe([lvl("99")], [lvl("101")])
        feed.observe([], [lvl("200")])
        feed.observe([lvl("200")], [])
        assert feed.read() == (100.0, True)

    def test_unparseable_or_non_positive_dropped(self, clock):
        feed = MidPriceFeed(now_fn=clock)
        feed.observe([lvl("99")], [lvl("101")])
        feed.observe([lvl("abc")], [lvl("101")])
        feed.observe([lvl("0")], [lvl("101")])
        feed.observe([lvl("-5")], [lvl("101")])
        feed.observe([{"size": "1"}], [lvl("101")])
        assert feed.read() == (100.0, True)

    def test_last_write_wins(self, clock):
        feed = MidPriceFeed(now_fn=clock)
        feed.observe([lvl("99")], [lvl("101")])
        clock.advance(1)
        feed.observe([lvl("199")], [lvl("201")])
        assert feed.read() == (200.0, True)

    def test_wait_for_first_returns_immediately_when_fresh(self, clock):
        feed = MidPriceFeed(now_fn=clock)
        feed.observe([lvl("1")], [lvl("3")])
        assert feed.wait_for_first(1.0, threading.Event(), poll_sec=0.001) is True

    def test_wait_for_first_times_out(self):
        feed = MidPriceFeed()
        assert feed.wait_for_first(0.05, threading.Event(), poll_sec=0.01) is False

    def test_wait_for_first_stops_on_event(self):
        feed = MidPriceFeed()
        stop = threading.Event()
        stop.set()
        assert feed.wait_for_first(10.0, stop) is False
