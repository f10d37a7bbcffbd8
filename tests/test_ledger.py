import logging
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from dateutil import tz
from moneyed import EUR, USD, Money

from coinbasis.config import config
from coinbasis.exceptions import (
    NoPriorBalanceError,
    UnsupportedTransactionTypeError,
)
from coinbasis.ledger import Ledger
from coinbasis.typing import WalletId


def test_empty_ledger():
    ledger = Ledger(WalletId("WALLET"))

    assert ledger.wallet == "WALLET"
    assert ledger.last is None
    assert ledger.balance == Decimal("0")
    assert len(ledger) == 0
    assert ledger.holdings() == ()
    assert ledger.capital_gains() == []


def test_ledger_add_chains_transactions(make_raw):
    ledger = Ledger()

    tx1 = ledger.add(make_raw("buy", "10", datetime(2020, 1, 1), "100"))
    tx2 = ledger.add(make_raw("sell", "-4", datetime(2020, 2, 1), "-48"))

    assert tx1.prev is None
    assert tx2.prev is tx1
    assert ledger.last is tx2
    assert list(ledger) == [tx1, tx2]
    assert ledger.transactions == (tx1, tx2)
    assert ledger.balance == Decimal("6")

    (holding,) = ledger.holdings()
    assert holding.amount == Decimal("6")


def test_ledger_extend(make_raw):
    ledger = Ledger()
    ledger.extend(
        [
            make_raw("buy", "1", datetime(2020, 1, 1), "100"),
            make_raw("send", "1", datetime(2020, 1, 2), has_from=True),
            make_raw("send", "-1.5", datetime(2020, 1, 3), has_to=True),
        ]
    )

    assert len(ledger) == 3
    assert ledger.balance == Decimal("0.5")


def test_ledger_add_failure(make_raw, caplog):
    ledger = Ledger()
    tx = ledger.add(make_raw("buy", "1", datetime(2020, 1, 1), "100"))
    raw = make_raw("staking_reward", "1", datetime(2020, 1, 2))

    with (
        caplog.at_level(logging.ERROR, logger="coinbasis"),
        pytest.raises(UnsupportedTransactionTypeError) as exc_info,
    ):
        ledger.add(raw)

    assert exc_info.value.record is raw
    assert exc_info.value.prev is tx
    assert ledger.last is tx
    assert len(ledger) == 1
    assert "Last transaction" in caplog.text
    assert "New transaction" in caplog.text


def test_ledger_starting_with_outgoing(make_raw):
    ledger = Ledger()

    with pytest.raises(NoPriorBalanceError):
        ledger.add(make_raw("sell", "-1", datetime(2020, 1, 1), "-10"))

    assert len(ledger) == 0


def test_ledger_capital_gains(make_raw):
    ledger = Ledger()
    ledger.extend(
        [
            make_raw("buy", "1", datetime(2018, 1, 10), "1000"),
            make_raw("buy", "1", datetime(2019, 11, 1), "8000"),
            make_raw("sell", "-1.5", datetime(2020, 1, 15), "-12000"),
        ]
    )

    capital_gains = ledger.capital_gains()
    assert len(capital_gains) == 2

    short, long = capital_gains

    assert not short.is_long_term
    assert short.term == "Short"
    assert short.amount == Decimal("1")
    assert short.cost == Money("8000", USD)
    assert short.proceeds == Money("8000", USD)
    assert short.gain == Money("0", USD)
    assert short.year == 2020
    assert short.days_held == Decimal("75")

    assert long.is_long_term
    assert long.term == "Long"
    assert long.amount == Decimal("0.5")
    assert long.cost == Money("500", USD)
    assert long.proceeds == Money("4000", USD)
    assert long.gain == Money("3500", USD)
    assert str(long).startswith("Long-term: Amount")


def test_ledger_logs_transactions(make_raw, caplog):
    ledger = Ledger()

    with caplog.at_level(logging.INFO, logger="coinbasis"):
        ledger.add(
            make_raw("buy", "10", datetime(2020, 1, 1, tzinfo=timezone.utc), "100")
        )

    assert "TX" in caplog.text
    assert " IN/TRADE " in caplog.text


def test_ledger_capital_gains_in_wallet_currency(make_raw):
    ledger = Ledger()
    ledger.extend(
        [
            make_raw("buy", "1", datetime(2020, 1, 1), "-8000", native_currency="EUR"),
            make_raw("send", "1", datetime(2020, 2, 1), has_from=True),
            make_raw(
                "sell", "-1.5", datetime(2020, 3, 1), "13500", native_currency="EUR"
            ),
            make_raw("send", "-0.25", datetime(2020, 4, 1), has_to=True),
        ]
    )

    for tx in ledger:
        assert tx.native_currency == EUR
        assert tx.exchange_amount.currency == EUR

    capital_gains = ledger.capital_gains()
    assert len(capital_gains) == 3
    for cg in capital_gains:
        assert cg.cost.currency == EUR
        assert cg.proceeds.currency == EUR
        assert cg.gain.currency == EUR

    (holding,) = ledger.holdings()
    assert holding.amount == Decimal("0.25")
    assert holding.acquisition_price.currency == EUR


def test_capital_gain_year_in_local_time(make_raw):
    config.timezone = tz.gettz("Asia/Tokyo")

    ledger = Ledger()
    ledger.extend(
        [
            make_raw("buy", "1", datetime(2020, 6, 1), "100"),
            make_raw("sell", "-1", datetime(2020, 12, 31, 20, 0), "-200"),
        ]
    )

    (cg,) = ledger.capital_gains()
    assert cg.transaction.time.year == 2020
    assert cg.year == 2021
