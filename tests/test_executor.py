import pytest

from deploy_pipeline.exceptions import ConfirmationFailed, ConfirmationTimeout, SubmissionFailed
from deploy_pipeline.executor import await_confirmation, execute_deployment, submit_deployment
from deploy_pipeline.gas import compute_gas_limit
from deploy_pipeline.models import Confirmed, PendingTransaction

from conftest import GAS_PRICE, GAS_USED, fake_address


@pytest.fixture
def gas_plan():
    return compute_gas_limit(1_000_000)


def test_execute_deployment_confirms(client, factory, target, network, gas_plan):
    result = execute_deployment(client, factory, target, network, gas_plan, timeout=42)

    assert isinstance(result, Confirmed)
    assert result.address == fake_address(1)
    assert result.tx_hash == f"0x{1:064x}"
    assert result.receipt.gas_used == GAS_USED
    assert result.cost == GAS_USED * GAS_PRICE
    assert client.waited == [42]


def test_submission_uses_gas_limit(client, factory, target, network, gas_plan):
    submit_deployment(client, factory, target, network, gas_plan)

    transaction, gas_limit = client.submitted[0]
    assert gas_limit == 1_200_000
    assert transaction["args"] == (100_000,)


def test_submission_error(client, factory, target, network, gas_plan):
    client.submit_error = ValueError("insufficient funds for gas * price + value")

    with pytest.raises(SubmissionFailed) as exc_info:
        submit_deployment(client, factory, target, network, gas_plan)

    assert "insufficient funds" in str(exc_info.value)
    assert client.waited == []


def test_reverted_receipt(client, target):
    client.status = 0
    pending = PendingTransaction(tx_hash="0x01", handle=1)

    with pytest.raises(ConfirmationFailed, match="reverted"):
        await_confirmation(client, target, pending)


def test_receipt_without_contract_address(client, target):
    client.no_address = True
    pending = PendingTransaction(tx_hash="0x01", handle=1)

    with pytest.raises(ConfirmationFailed, match="created no contract"):
        await_confirmation(client, target, pending)


def test_typed_timeout_passes_through(client, target):
    client.wait_error = ConfirmationTimeout("not mined within 30s")
    pending = PendingTransaction(tx_hash="0x01", handle=1)

    with pytest.raises(ConfirmationTimeout):
        await_confirmation(client, target, pending, timeout=30)


def test_unclassified_wait_error(client, target):
    client.wait_error = ConnectionError("connection reset")
    pending = PendingTransaction(tx_hash="0x01", handle=1)

    with pytest.raises(ConfirmationFailed) as exc_info:
        await_confirmation(client, target, pending)

    assert isinstance(exc_info.value.cause, ConnectionError)
