# tests/test_store.py
"""
Tests del store local (persistencia JSON, consultas, suscripciones) y del
recalculo reactivo de la analítica (`AnalyticsFeed`).
"""

import json

import pandas as pd
import pytest

from tradejournal.dashboard import AnalyticsFeed
from tradejournal.errors import StoreError, TradeNotFoundError
from tradejournal.store import TradeStore


def trade_data(ticker="AAA", pnl=10.0, close="2025-01-10", **extra):
    data = {
        "ticker": ticker,
        "asset_type": "Stock",
        "position": "Long",
        "entry_price": 100.0,
        "exit_price": 100.0 + pnl,
        "position_size": 1.0,
        "commission": 0.0,
        "close_date": pd.Timestamp(close, tz="UTC") if close else None,
    }
    data.update(extra)
    return data


# ------------------------------------------------------------------------------
# Escrituras y persistencia
# ------------------------------------------------------------------------------
def test_add_assigns_id_user_and_created_at():
    store = TradeStore()
    t = store.add_trade("alice", trade_data(ticker="bbca"))
    assert t.id and t.user_id == "alice"
    assert t.created_at is not None
    assert t.ticker == "BBCA"


def test_users_are_isolated():
    store = TradeStore()
    store.add_trade("alice", trade_data())
    assert store.list_trades("bob") == []
    assert len(store.list_trades("alice")) == 1


def test_json_roundtrip_on_disk(tmp_path):
    store = TradeStore(tmp_path)
    t = store.add_trade("alice", trade_data(strategy="Breakout", execution_rating=4))

    path = tmp_path / "users" / "alice" / "trades.json"
    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw[0]["entryPrice"] == 100.0
    assert raw[0]["closeDate"].startswith("2025-01-10")

    reloaded = TradeStore(tmp_path).get_trade("alice", t.id)
    assert reloaded == t


def test_corrupt_json_raises_store_error(tmp_path):
    path = tmp_path / "users" / "alice" / "trades.json"
    path.parent.mkdir(parents=True)
    path.write_text("{no es json", encoding="utf-8")
    with pytest.raises(StoreError, match="trades.json"):
        TradeStore(tmp_path).list_trades("alice")


def test_memory_store_has_no_persistence_path():
    store = TradeStore()
    with pytest.raises(StoreError, match="memoria"):
        store._path("alice")
    store.add_trade("alice", trade_data())  # en memoria no se intenta escribir
    assert len(store.list_trades("alice")) == 1


def test_update_and_delete():
    store = TradeStore()
    t = store.add_trade("alice", trade_data())
    updated = store.update_trade("alice", t.id, exit_price=150.0, ticker="xyz", id="hack")
    assert updated.id == t.id
    assert updated.exit_price == 150.0 and updated.ticker == "XYZ"

    store.delete_trade("alice", t.id)
    assert store.list_trades("alice") == []


def test_unknown_trade_raises_not_found():
    store = TradeStore()
    with pytest.raises(TradeNotFoundError):
        store.delete_trade("alice", "nope")
    with pytest.raises(TradeNotFoundError):
        store.update_trade("alice", "nope", commission=1.0)
    with pytest.raises(KeyError):
        store.get_trade("alice", "nope")


# ------------------------------------------------------------------------------
# Consultas
# ------------------------------------------------------------------------------
def test_list_trades_orderings():
    store = TradeStore()
    a = store.add_trade("u", trade_data(ticker="A", close="2025-01-03"))
    b = store.add_trade("u", trade_data(ticker="B", close="2025-01-01"))
    c = store.add_trade("u", trade_data(ticker="C", close=None))

    newest_first = store.list_trades("u")
    assert [t.id for t in newest_first] == [c.id, b.id, a.id]

    by_close = store.list_trades("u", order_by="close_date", descending=False)
    assert [t.ticker for t in by_close] == ["B", "A", "C"]  # sin fecha al final

    with pytest.raises(ValueError):
        store.list_trades("u", order_by="ticker")


def test_latest_trade_for_ticker():
    store = TradeStore()
    store.add_trade("u", trade_data(ticker="AAA", strategy="Scalp"))
    last = store.add_trade("u", trade_data(ticker="AAA", strategy="Swing", asset_type="Crypto"))
    store.add_trade("u", trade_data(ticker="BBB", strategy="Other"))

    found = store.latest_trade_for_ticker("u", "aaa")
    assert found.id == last.id
    assert found.strategy == "Swing" and found.asset_type == "Crypto"
    assert store.latest_trade_for_ticker("u", "ZZZ") is None
    assert store.latest_trade_for_ticker("other", "AAA") is None


# ------------------------------------------------------------------------------
# Suscripciones
# ------------------------------------------------------------------------------
def test_subscribe_delivers_initial_and_subsequent_snapshots():
    store = TradeStore()
    store.add_trade("u", trade_data())
    seen = []
    unsubscribe = store.subscribe("u", lambda snap: seen.append(len(snap)))
    store.add_trade("u", trade_data())
    store.add_trade("other", trade_data())  # otro usuario: no notifica
    unsubscribe()
    store.add_trade("u", trade_data())
    assert seen == [1, 2]


def test_failing_listener_propagates():
    store = TradeStore()
    calls = []

    def listener(snap):
        calls.append(len(snap))
        if len(snap) > 0:
            raise RuntimeError("boom")

    store.subscribe("u", listener)
    with pytest.raises(RuntimeError, match="boom"):
        store.add_trade("u", trade_data())
    assert calls == [0, 1]


# ------------------------------------------------------------------------------
# AnalyticsFeed: recalculo completo en cada snapshot
# ------------------------------------------------------------------------------
def test_feed_recomputes_on_every_write():
    store = TradeStore()
    feed = AnalyticsFeed(store, "u")
    assert not feed.loading
    assert feed.summary.is_empty

    published = []
    feed.on_update(lambda s: published.append(s.total_net_pnl))

    t = store.add_trade("u", trade_data(pnl=100, close="2025-01-01"))
    store.add_trade("u", trade_data(ticker="BBB", pnl=-40, close="2025-01-02"))
    assert feed.summary.total_net_pnl == pytest.approx(60)
    assert feed.summary.profit_factor == pytest.approx(2.5)

    store.delete_trade("u", t.id)
    assert feed.summary.total_net_pnl == pytest.approx(-40)
    assert published == pytest.approx([0, 100, 60, -40])
    assert feed.updates == 4

    feed.close()
    store.add_trade("u", trade_data(pnl=1000))
    assert feed.summary.total_net_pnl == pytest.approx(-40)


def test_feed_open_trades_do_not_move_summary():
    store = TradeStore()
    feed = AnalyticsFeed(store, "u")
    store.add_trade("u", trade_data(pnl=10, close="2025-01-01"))
    before = feed.summary
    store.add_trade("u", trade_data(pnl=500, close=None))
    assert feed.summary == before
    assert len(feed.trades) == 2
