import pytest

from folio_auth.infrastructure.outbox.dispatcher import (
    OutboxDispatcher,
    RetryPolicy,
    UnknownTopic,
)
from tests.fakes import FakeEmailOK


def test_delay_doubles_and_caps():
    policy = RetryPolicy(base=2, max_delay=300, max_attempts=8)
    assert [policy.compute_delay(n) for n in range(4)] == [2, 4, 8, 16]
    assert policy.compute_delay(20) == 300
    assert not policy.exhausted(7)
    assert policy.exhausted(8)


@pytest.mark.asyncio
async def test_dispatch_routes_email_topic():
    email = FakeEmailOK()
    dispatcher = OutboxDispatcher(pool=None, email_adapter=email)

    await dispatcher._dispatch(
        "email.send",
        {"to": "a@example.com", "subject": "S", "body": "B"},
        idempotency_key="outbox-9",
    )

    assert email.calls == [
        {"to": "a@example.com", "subject": "S", "body": "B", "idempotency_key": "outbox-9"}
    ]

    with pytest.raises(UnknownTopic):
        await dispatcher._dispatch("sms.send", {}, idempotency_key="outbox-10")
