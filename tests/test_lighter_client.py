import pytest
import requests
from unittest.mock import Mock

from lighter_mm.backend.broker.lighter_client import (
    LighterClient,
    LighterConfig,
    TX_TYPE_CANCEL_ALL_ORDERS,
    TX_TYPE_CREATE_ORDER,
)
from lighter_mm.domain.dto import OrderRequest, Side
from lighter_mm.domain.errors import (
    ExchangeAuthError,
    ExchangeNetworkError,
    ExchangeOrderRejected,
    ExchangeRateLimitError,
    ExchangeValidationError,
    TransportFailure,
)
from lighter_mm.infra.signer import TxSigner

ORDER_BOOKS = {
    "code": 200,
    "order_books": [
        {"symbol": "ETH", "market_id": 0, "supported_price_decimals": 2, "supported_size_decimals": 4},
        {"symbol": "PAXG", "market_id": 48, "supported_price_decimals": 2, "supported_size_decimals": 3},
    ],
}


def response(status=200, payload=None, text=""):
    resp = Mock()
    resp.status_code = status
    resp.text = text
    if payload is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = payload
    return resp


class RecordingSigner(TxSigner):
    def __init__(self):
        self.orders = []
        self.cancels = []

    def sign_create_order(self, req):
        self.orders.append(req)
        return '{"signed": "order"}'

    def sign_cancel_all_orders(self, req):
        self.cancels.append(req)
        return '{"signed": "cancel"}'


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def signer():
    return RecordingSigner()


@pytest.fixture
def client(session, signer):
    return LighterClient(LighterConfig(base_url="https://api.test"), signer=signer, session=session)


class TestReads:
    def test_find_market_case_insensitive(self, client, session):
        session.request.return_value = response(payload=ORDER_BOOKS)
        info = client.find_market("paxg")
        assert info.market_id == 48
        assert info.price_tick == pytest.approx(0.01)
        assert info.size_tick == pytest.approx(0.001)
        session.request.assert_called_with("GET", "https://api.test/api/v1/orderBooks", timeout=30.0)

    def test_find_market_missing(self, client, session):
        session.request.return_value = response(payload=ORDER_BOOKS)
        with pytest.raises(LookupError):
            client.find_market("BTC")

    def test_fetch_account(self, client, session):
        session.request.return_value = response(
            payload={
                "code": 200,
                "accounts": [
                    {
                        "index": 7,
                        "available_balance": "120.5",
                        "total_asset_value": "130",
                        "positions": [{"market_id": 48, "position": "0.25", "sign": -1}],
                    }
                ],
            }
        )
        accounts = client.fetch(7)
        assert accounts[0].index == 7
        assert accounts[0].available_balance == "120.5"
        assert accounts[0].positions[0].sign == -1
        _, kwargs = session.request.call_args
        assert kwargs["params"] == {"by": "index", "value": "7"}


class TestErrors:
    @pytest.mark.parametrize(
        "status,exc",
        [(429, ExchangeRateLimitError), (401, ExchangeAuthError), (403, ExchangeAuthError), (500, TransportFailure)],
    )
    def test_status_mapping(self, client, session, status, exc):
        session.request.return_value = response(status=status, text="boom")
        with pytest.raises(exc):
            client.fetch(7)

    def test_network_error(self, client, session):
        session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(ExchangeNetworkError):
            client.get_order_books()

    def test_error_code_in_body(self, client, session):
        session.request.return_value = response(payload={"code": 21500, "message": "bad"})
        with pytest.raises(TransportFailure, match="code=21500"):
            client.get_order_books()


class TestWrites:
    def order(self, **kw):
        base = dict(client_order_index=11, market_id=48, side=Side.SELL, price=100.03, size=2.0, reduce_only=True)
        base.update(kw)
        return OrderRequest(**base)

    def test_submit_encodes_ticks(self, client, session, signer):
        session.request.side_effect = [
            response(payload=ORDER_BOOKS),
            response(payload={"code": 200, "tx_hash": "0xdead"}),
        ]
        assert client.submit(self.order()) == "0xdead"

        req = signer.orders[0]
        assert req["Price"] == 10003
        assert req["BaseAmount"] == 2000
        assert req["IsAsk"] == 1
        assert req["ReduceOnly"] == 1
        assert req["TimeInForce"] == 2
        method, url = session.request.call_args.args
        assert (method, url) == ("POST", "https://api.test/api/v1/sendTx")
        assert session.request.call_args.kwargs["data"]["tx_type"] == str(TX_TYPE_CREATE_ORDER)

    def test_rejected_order(self, client, session):
        session.request.side_effect = [
            response(payload=ORDER_BOOKS),
            response(status=400, payload={"code": 21700, "message": "invalid price"}),
        ]
        with pytest.raises(ExchangeOrderRejected):
            client.submit(self.order())

    def test_invalid_order(self, client):
        with pytest.raises(ExchangeValidationError):
            client.submit(self.order(size=0))

    def test_cancel_all(self, client, session, signer):
        session.request.return_value = response(payload={"code": 200, "tx_hash": "0x1"})
        client.cancel_all()
        assert len(signer.cancels) == 1
        assert session.request.call_args.kwargs["data"]["tx_type"] == str(TX_TYPE_CANCEL_ALL_ORDERS)

    def test_write_without_signer(self, session):
        client = LighterClient(LighterConfig(base_url="https://api.test"), session=session)
        with pytest.raises(ExchangeAuthError):
            client.cancel_all()
        session.request.assert_not_called()


class TestUnexpectedFailures:
    def test_any_requests_error_is_network_error(self, client, session):
        session.request.side_effect = requests.exceptions.ChunkedEncodingError("reset mid-body")
        with pytest.raises(ExchangeNetworkError):
            client.fetch(7)

    def test_signer_crash_becomes_transport_failure(self, session):
        signer = Mock(spec=TxSigner)
        signer.sign_cancel_all_orders.side_effect = RuntimeError("nonce fetch failed")
        client = LighterClient(LighterConfig(base_url="https://api.test"), signer=signer, session=session)
        with pytest.raises(ExchangeAuthError):
            client.cancel_all()
        session.request.assert_not_called()

    def test_null_fields_in_account(self, client, session):
        session.request.return_value = response(
            payload={"code": 200, "accounts": [{"index": None, "positions": [{"market_id": None}]}]}
        )
        with pytest.raises(TransportFailure, match="malformed"):
            client.fetch(7)
