"""
Shared fixtures for the escrowledger test suite.
"""

import pytest

from escrowledger import Escrow, Order, PaymentProcessor

OWNER    = "ST1TEST"
BUYER    = "ST1BUYER"
SUPPLIER = "ST1SUPPLIER"


def make_order(amount: int = 1000, token: str = None, **overrides) -> Order:
    """Helper: a verified buyer/supplier order."""
    fields = {
        "buyer":    BUYER,
        "supplier": SUPPLIER,
        "amount":   amount,
        "due_date": 100,
        "status":   "verified",
        "token":    token,
    }
    fields.update(overrides)
    return Order(**fields)


def make_escrow(amount: int = 1000, locked: bool = True, token: str = None) -> Escrow:
    return Escrow(amount=amount, locked=locked, token=token)


@pytest.fixture
def processor():
    """A fresh processor with default policy (owner ST1TEST, enabled)."""
    return PaymentProcessor()


@pytest.fixture
def order():
    return make_order()


@pytest.fixture
def escrow():
    return make_escrow()
