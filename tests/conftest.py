from __future__ import annotations

import pytest

from stellar_remit.models import AccountSequence, PaymentIntent
from tests.fakes import RECEIVER, SENDER


@pytest.fixture
def intent() -> PaymentIntent:
    return PaymentIntent(
        sender_public_key=SENDER.public_key,
        receiver_public_key=RECEIVER.public_key,
        amount=1_000_000,
        memo="Remittance",
    )


@pytest.fixture
def sequence() -> AccountSequence:
    return AccountSequence(account_id=SENDER.public_key, sequence=100)
