import json

import pytest
from unittest.mock import Mock, patch

from lighter_mm.app.price_feed import MidPriceFeed
from lighter_mm.backend.data.market_data import LighterOrderBookStream, LocalOrderBook
from lighter_mm.domain.errors import ExchangeNetworkError


def msg(kind, bids=(), asks=()):
    return json.dumps(
        {
            "type": kind,
            "channel": "order_book:1",
            "order_book": {
                "bids": [{"price": p, "size": s} for p, s in bids],
                "asks": [{"price": p, "size": s} for p, s in asks],
            },
        }
    )


class TestLocalOrderBook:
    def test_snapshot_then_updates(self):
        book = LocalOrderBook()
        book.apply({"bids": [{"price": "99", "size": "1"}, {"price": "98", "size": "2"}],
                    "asks": [{"price": "101", "size": "1"}]}, snapshot=True)
        book.apply({"bids": [{"price": "99", "size": "0"}], "asks": [{"price": "100.5", "size": "3"}]}, snapshot=False)
        bids, asks = book.top()
        assert bids[0]["price"] == "98"
        assert [a["price"] for a in asks] == ["100.5", "101"]

    def test_snapshot_replaces(self):
        book = LocalOrderBook()
        book.apply({"bids": [{"price": "99", "size": "1"}]}, snapshot=True)
        book.apply({"bids": [{"price": "50", "size": "1"}]}, snapshot=True)
        assert book.top()[0] == [{"price": "50", "size": "1"}]


class TestHandleMessage:
    def setup_method(self):
        self.stream = LighterOrderBookStream("wss://api.test/stream")
        self.ws = Mock()
        self.book = LocalOrderBook()
        self.on_update = Mock()

    def test_forwards_best_levels(self):
        self.stream.handle_message(self.ws, msg("subscribed/order_book", [("99", "1")], [("101", "1")]), self.book, self.on_update)
        self.stream.handle_message(self.ws, msg("update/order_book", [("99.5", "1")], []), self.book, self.on_update)
        bids, asks = self.on_update.call_args.args
        assert bids[0]["price"] == "99.5"
        assert asks[0]["price"] == "101"

    def test_answers_ping(self):
        self.stream.handle_message(self.ws, json.dumps({"type": "ping"}), self.book, self.on_update)
        self.ws.send.assert_called_once_with(json.dumps({"type": "pong"}))
        self.on_update.assert_not_called()

    def test_ignores_garbage_and_other_channels(self):
        self.stream.handle_message(self.ws, "not json", self.book, self.on_update)
        self.stream.handle_message(self.ws, json.dumps({"type": "connected"}), self.book, self.on_update)
        self.on_update.assert_not_called()

    def test_callback_errors_do_not_escape(self):
        self.on_update.side_effect = RuntimeError("boom")
        self.stream.handle_message(self.ws, msg("subscribed/order_book", [("1", "1")], [("2", "1")]), self.book, self.on_update)


class TestSubscribe:
    def test_subscribe_and_unsubscribe(self):
        with patch("lighter_mm.backend.data.market_data.websocket.WebSocketApp") as app_cls:
            app = app_cls.return_value
            unsubscribe = LighterOrderBookStream("wss://api.test/stream").subscribe(48, Mock())

            on_open = app_cls.call_args.kwargs["on_open"]
            ws = Mock()
            on_open(ws)
            ws.send.assert_called_once_with(json.dumps({"type": "subscribe", "channel": "order_book/48"}))

            unsubscribe()
            app.close.assert_called_once()
            assert app.keep_running is False

    def test_bad_url(self):
        with pytest.raises(ExchangeNetworkError):
            LighterOrderBookStream("https://api.test").subscribe(1, Mock())


class TestBadLevels:
    def test_bad_price_is_dropped_and_feed_recovers(self):
        stream = LighterOrderBookStream("wss://api.test/stream")
        book = LocalOrderBook()
        feed = MidPriceFeed()
        stream.handle_message(Mock(), msg("subscribed/order_book", [("bad", "1"), ("99", "1")], [("101", "1")]), book, feed.observe)
        stream.handle_message(Mock(), msg("update/order_book", [("99.5", "2")], []), book, feed.observe)

        assert "bad" not in book.bids
        mid, fresh = feed.read()
        assert fresh
        assert mid == pytest.approx(100.25)
