"""Expiry sweeper and end-date parsing."""

import asyncio
from datetime import datetime, timezone

from conftest import ADDR, OTHER_ADDR

from predindex.errors import CancellationError
from predindex.indexer.expiry import ExpirySweeper, parse_end_time
from predindex.storage.markets import insert_market, update_market_summary

NOW = datetime(2020, 1, 3, tzinfo=timezone.utc)


class RecordingCanceller:
    def __init__(self, fail_for=()):
        self.calls = []
        self.fail_for = set(fail_for)

    async def cancel_market(self, address):
        self.calls.append(address)
        if address in self.fail_for:
            raise CancellationError("insufficient gas")
        return "digest-" + address[-4:]


def test_parse_bare_date_is_end_of_day_utc():
    assert parse_end_time("2020-01-01") == datetime(2020, 1, 1, 23, 59, 59, tzinfo=timezone.utc)


def test_parse_timestamps():
    assert parse_end_time("2020-01-01T10:00:00Z") == datetime(2020, 1, 1, 10, tzinfo=timezone.utc)
    assert parse_end_time("2020-01-01T12:00:00+02:00") == datetime(2020, 1, 1, 10, tzinfo=timezone.utc)
    assert parse_end_time("2020-01-01T10:00:00") == datetime(2020, 1, 1, 10, tzinfo=timezone.utc)


def test_parse_rejects_garbage():
    assert parse_end_time(None) is None
    assert parse_end_time("") is None
    assert parse_end_time("next tuesday") is None
    assert parse_end_time("2020-13-45") is None
    # Date-only forms other than YYYY-MM-DD would otherwise mean midnight, a day early
    assert parse_end_time("20200101") is None
    assert parse_end_time("2020-W01-1") is None


def _resolve(conn, market_id):
    update_market_summary(conn, market_id, total_volume=0.0, odds=[1.0, 0.0], resolved=True, winner=0)


def test_sweep_cancels_only_expired_unresolved(temp_db):
    expired = insert_market(temp_db, name="expired", address=ADDR, options=["Yes", "No"], end_date="2020-01-01")
    resolved = insert_market(temp_db, name="done", address=OTHER_ADDR, options=["Yes", "No"], end_date="2019-06-01")
    _resolve(temp_db, resolved.market_id)
    insert_market(temp_db, name="future", address="0x1", options=["Yes", "No"], end_date="2099-01-01")
    insert_market(temp_db, name="open ended", address="0x2", options=["Yes", "No"])
    insert_market(temp_db, name="garbled", address="0x3", options=["Yes", "No"], end_date="soon")

    canceller = RecordingCanceller()
    results = asyncio.run(ExpirySweeper(temp_db, canceller).sweep_once(NOW))
    assert canceller.calls == [ADDR]
    assert [r.market_id for r in results] == [expired.market_id]
    assert results[0].ok and results[0].digest


def test_same_day_is_not_yet_expired(temp_db):
    insert_market(temp_db, name="today", address=ADDR, options=["Yes", "No"], end_date="2020-01-03")
    canceller = RecordingCanceller()
    asyncio.run(ExpirySweeper(temp_db, canceller).sweep_once(NOW))
    assert canceller.calls == []


def test_failure_does_not_block_other_markets(temp_db):
    insert_market(temp_db, name="a", address=OTHER_ADDR, options=["Yes", "No"], end_date="2020-01-01")
    insert_market(temp_db, name="b", address=ADDR, options=["Yes", "No"], end_date="2020-01-02T00:00:00Z")
    canceller = RecordingCanceller(fail_for={OTHER_ADDR})
    results = asyncio.run(ExpirySweeper(temp_db, canceller).sweep_once(NOW))
    assert canceller.calls == [OTHER_ADDR, ADDR]
    assert [r.ok for r in results] == [False, True]
    assert "insufficient gas" in results[0].error


def test_run_sweeps_until_stopped(temp_db):
    insert_market(temp_db, name="a", address=ADDR, options=["Yes", "No"], end_date="2020-01-01")
    canceller = RecordingCanceller()
    sweeper = ExpirySweeper(temp_db, canceller, interval_sec=60.0)

    async def scenario():
        stop = asyncio.Event()
        task = asyncio.create_task(sweeper.run(stop))
        for _ in range(100):
            if canceller.calls:
                break
            await asyncio.sleep(0.01)
        stop.set()
        await asyncio.wait_for(task, timeout=1.0)

    asyncio.run(scenario())
    assert canceller.calls == [ADDR]


def test_cancelled_market_is_not_resubmitted(temp_db):
    market = insert_market(temp_db, name="a", address=ADDR, options=["Yes", "No"], end_date="2020-01-01")
    canceller = RecordingCanceller()
    sweeper = ExpirySweeper(temp_db, canceller)
    asyncio.run(sweeper.sweep_once(NOW))
    assert asyncio.run(sweeper.sweep_once(NOW)) == []
    assert canceller.calls == [ADDR]
    assert sweeper.cancelled == {market.market_id: "digest-" + ADDR[-4:]}

    # Once the chain resolution reaches the store the entry is forgotten
    _resolve(temp_db, market.market_id)
    asyncio.run(sweeper.sweep_once(NOW))
    assert sweeper.cancelled == {}


def test_failed_cancel_is_retried_next_sweep(temp_db):
    insert_market(temp_db, name="a", address=ADDR, options=["Yes", "No"], end_date="2020-01-01")
    canceller = RecordingCanceller(fail_for={ADDR})
    sweeper = ExpirySweeper(temp_db, canceller)
    asyncio.run(sweeper.sweep_once(NOW))
    asyncio.run(sweeper.sweep_once(NOW))
    assert canceller.calls == [ADDR, ADDR]
    assert sweeper.cancelled == {}
