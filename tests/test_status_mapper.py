import logging

import pytest

from paidmada.core.payments.model.paymentstatus import TransactionStatus
from paidmada.core.payments.providers.airtel_money import AirtelMoneyProvider
from paidmada.core.payments.providers.mvola import MVolaProvider
from paidmada.core.payments.providers.orange_money import OrangeMoneyProvider


@pytest.mark.parametrize("native, expected", [
    ("pending", TransactionStatus.PENDING),
    ("completed", TransactionStatus.SUCCESS),
    ("COMPLETED", TransactionStatus.SUCCESS),
    ("success", TransactionStatus.SUCCESS),
    ("rejected", TransactionStatus.FAILED),
    ("failed", TransactionStatus.FAILED),
    ("expired", TransactionStatus.EXPIRED),
    ("cancelled", TransactionStatus.CANCELLED),
])
def test_mvola_statuses(native, expected):
    assert MVolaProvider.status_mapper.map(native) == expected


@pytest.mark.parametrize("native, expected", [
    ("INITIATED", TransactionStatus.PENDING),
    ("PENDING", TransactionStatus.PENDING),
    ("SUCCESS", TransactionStatus.SUCCESS),
    ("success", TransactionStatus.SUCCESS),
    ("FAILED", TransactionStatus.FAILED),
    ("EXPIRED", TransactionStatus.EXPIRED),
    ("CANCELLED", TransactionStatus.CANCELLED),
])
def test_orange_statuses(native, expected):
    assert OrangeMoneyProvider.status_mapper.map(native) == expected


@pytest.mark.parametrize("native, expected", [
    ("DP00800001001", TransactionStatus.SUCCESS),
    ("TS", TransactionStatus.SUCCESS),
    ("TIP", TransactionStatus.PENDING),
    ("TF", TransactionStatus.FAILED),
    ("Successful", TransactionStatus.SUCCESS),
    ("expired", TransactionStatus.EXPIRED),
])
def test_airtel_statuses(native, expected):
    assert AirtelMoneyProvider.status_mapper.map(native) == expected


def test_tables_are_independent_per_network():
    # "TS" only means something to Airtel
    assert AirtelMoneyProvider.status_mapper.map("TS") == TransactionStatus.SUCCESS
    assert MVolaProvider.status_mapper.map("TS") == TransactionStatus.PENDING
    assert OrangeMoneyProvider.status_mapper.map("completed") == TransactionStatus.PENDING


def test_missing_status_is_pending():
    assert MVolaProvider.status_mapper.map(None) == TransactionStatus.PENDING
    assert MVolaProvider.status_mapper.map("") == TransactionStatus.PENDING


def test_unknown_status_is_pending_and_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="paidmada.utilities.status_mapper"):
        status = OrangeMoneyProvider.status_mapper.map("ON_HOLD")

    assert status == TransactionStatus.PENDING
    assert "orange_money" in caplog.text
    assert "ON_HOLD" in caplog.text
