import asyncio

from paidmada.core.payments.dto.request.paymentrequest import PaymentRequest, TransactionStatusRequest
from paidmada.core.payments.model.paynetwork import Network
from paidmada.core.payments.model.paymentstatus import TransactionStatus
from paidmada.core.payments.providers.mock import MockProvider


def payment_request(network=Network.MVOLA, phone="0341234567", amount=1000):
    return PaymentRequest(network=network, amount=amount, customer_phone=phone, description="Test")


def status_request(transaction_id, network=Network.MVOLA):
    return TransactionStatusRequest(network=network, transaction_id=transaction_id)


def test_success_rate_100_always_succeeds():
    provider = MockProvider(Network.MVOLA, success_rate=100, response_delay=0, simulate_pending=False)

    async def run():
        responses = [await provider.initiate_payment(payment_request()) for _ in range(5)]
        details = await provider.get_transaction_status(status_request(responses[0].transaction_id))
        return responses, details

    responses, details = asyncio.run(run())

    assert all(response.status == TransactionStatus.SUCCESS for response in responses)
    assert all(response.success for response in responses)
    assert responses[0].transaction_id.startswith("MOCK-")
    assert responses[0].server_correlation_id.startswith("CORR-")
    assert details.status == TransactionStatus.SUCCESS
    assert details.amount == 1000
    assert details.completed_at is not None


def test_success_rate_0_always_fails():
    provider = MockProvider(Network.AIRTEL_MONEY, success_rate=0, response_delay=0, simulate_pending=False)

    async def run():
        return [await provider.initiate_payment(payment_request(Network.AIRTEL_MONEY, "0331234567")) for _ in range(5)]

    responses = asyncio.run(run())

    assert all(response.status == TransactionStatus.FAILED for response in responses)
    # The call itself went through
    assert all(response.success for response in responses)


def test_pending_settles_after_delay():
    provider = MockProvider(Network.MVOLA, success_rate=100, response_delay=0, simulate_pending=True, pending_delay=0.05)

    async def run():
        response = await provider.initiate_payment(payment_request())
        before = await provider.get_transaction_status(status_request(response.transaction_id))
        await asyncio.sleep(0.2)
        after = await provider.get_transaction_status(status_request(response.transaction_id))
        return response, before, after

    response, before, after = asyncio.run(run())

    assert response.status == TransactionStatus.PENDING
    assert before.status == TransactionStatus.PENDING
    assert after.status == TransactionStatus.SUCCESS
    assert after.status.is_terminal


def test_forced_status_wins_over_scheduled_outcome():
    provider = MockProvider(Network.MVOLA, success_rate=100, response_delay=0, simulate_pending=True, pending_delay=0.05)

    async def run():
        response = await provider.initiate_payment(payment_request())
        assert provider.set_transaction_status(response.transaction_id, TransactionStatus.CANCELLED)
        await asyncio.sleep(0.2)
        return await provider.get_transaction_status(status_request(response.transaction_id))

    details = asyncio.run(run())

    assert details.status == TransactionStatus.CANCELLED


def test_unknown_transaction_reports_failed_with_zero_amount():
    provider = MockProvider(Network.MVOLA, response_delay=0)

    details = asyncio.run(provider.get_transaction_status(status_request("MOCK-UNKNOWN")))

    assert details.status == TransactionStatus.FAILED
    assert details.amount == 0
    assert details.transaction_id == "MOCK-UNKNOWN"


def test_set_status_on_unknown_transaction_returns_false():
    provider = MockProvider(Network.MVOLA, response_delay=0)
    assert provider.set_transaction_status("nope", TransactionStatus.SUCCESS) is False


def test_clear_transactions():
    provider = MockProvider(Network.MVOLA, response_delay=0, simulate_pending=False)

    async def run():
        response = await provider.initiate_payment(payment_request())
        provider.clear_transactions()
        return await provider.get_transaction_status(status_request(response.transaction_id))

    details = asyncio.run(run())

    assert details.status == TransactionStatus.FAILED
    assert details.amount == 0


def test_only_orange_returns_a_payment_url():
    orange = MockProvider(Network.ORANGE_MONEY, response_delay=0, simulate_pending=False)
    mvola = MockProvider(Network.MVOLA, response_delay=0, simulate_pending=False)

    async def run():
        return (
            await orange.initiate_payment(payment_request(Network.ORANGE_MONEY, "0321234567")),
            await mvola.initiate_payment(payment_request()),
        )

    orange_response, mvola_response = asyncio.run(run())

    assert orange_response.payment_url == f"https://mock.orange.com/pay/{orange_response.transaction_id}"
    assert mvola_response.payment_url is None


def test_settled_transactions_release_their_timer():
    provider = MockProvider(Network.MVOLA, success_rate=100, response_delay=0, simulate_pending=True, pending_delay=0.05)

    async def run():
        await provider.initiate_payment(payment_request())
        await provider.initiate_payment(payment_request())
        pending_timers = len(provider._timers)
        await asyncio.sleep(0.2)
        return pending_timers, len(provider._timers)

    pending_timers, settled_timers = asyncio.run(run())

    assert pending_timers == 2
    assert settled_timers == 0


def test_clear_transactions_cancels_scheduled_settlements():
    provider = MockProvider(Network.MVOLA, success_rate=100, response_delay=0, simulate_pending=True, pending_delay=60)

    async def run():
        await provider.initiate_payment(payment_request())
        provider.clear_transactions()
        return len(provider._timers)

    assert asyncio.run(run()) == 0
