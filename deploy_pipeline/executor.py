from deploy_pipeline.constants import DEFAULT_CONFIRMATION_TIMEOUT
from deploy_pipeline.exceptions import ConfirmationFailed, DeploymentError, SubmissionFailed
from deploy_pipeline.interfaces import ChainClient, ContractFactory
from deploy_pipeline.models import (
    Confirmed,
    DeploymentTarget,
    GasPlan,
    NetworkContext,
    PendingTransaction,
)


def submit_deployment(
    client: ChainClient,
    factory: ContractFactory,
    target: DeploymentTarget,
    network: NetworkContext,
    gas_plan: GasPlan,
) -> PendingTransaction:
    """Broadcasts the creation transaction. Not idempotent."""
    try:
        transaction = factory.build_transaction(
            target.contract_name, target.args, sender=network.deployer
        )
        return client.submit(transaction, gas_limit=gas_plan.limit)
    except Exception as error:
        raise SubmissionFailed(
            f"{target.contract_name} creation transaction was rejected: {error}", cause=error
        ) from error


def await_confirmation(
    client: ChainClient,
    target: DeploymentTarget,
    pending: PendingTransaction,
    timeout: int = DEFAULT_CONFIRMATION_TIMEOUT,
) -> Confirmed:
    """Blocks until ``pending`` is mined, at most ``timeout`` seconds."""
    try:
        address, receipt = client.wait_for_confirmation(pending, timeout=timeout)
    except DeploymentError:
        # already classified by the client (e.g. ConfirmationTimeout)
        raise
    except Exception as error:
        raise ConfirmationFailed(
            f"Waiting for {target.contract_name} transaction {pending.tx_hash} failed: {error}",
            cause=error,
        ) from error

    if not receipt.status:
        raise ConfirmationFailed(
            f"{target.contract_name} transaction {pending.tx_hash} reverted "
            f"in block {receipt.block_number}"
        )
    if not address:
        raise ConfirmationFailed(
            f"{target.contract_name} transaction {pending.tx_hash} created no contract"
        )
    return Confirmed(address=address, tx_hash=pending.tx_hash, receipt=receipt)


def execute_deployment(
    client: ChainClient,
    factory: ContractFactory,
    target: DeploymentTarget,
    network: NetworkContext,
    gas_plan: GasPlan,
    timeout: int = DEFAULT_CONFIRMATION_TIMEOUT,
) -> Confirmed:
    pending = submit_deployment(client, factory, target, network, gas_plan)
    return await_confirmation(client, target, pending, timeout=timeout)
