"""
ape bindings for the pipeline's collaborators.

The connected ape provider is the chain client, the ape project's contract
containers are the contract factory and an ape account is the signer.
"""

import os
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ape import accounts, networks, project
from ape.api import AccountAPI, TransactionAPI
from ape.cli.choices import select_account
from ape.contracts import ContractContainer, ContractInstance
from ape.exceptions import TransactionNotFoundError
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address, to_hex

from deploy_pipeline.constants import LOCAL_NETWORK_NAMES
from deploy_pipeline.exceptions import ConfirmationTimeout, DeploymentConfigError
from deploy_pipeline.interfaces import ChainClient, ContractFactory
from deploy_pipeline.models import ChainId, NetworkContext, PendingTransaction, Receipt

DEPLOYER_ACCOUNT_ENVVAR = "DEPLOYER_ACCOUNT"
DEPLOYER_PASSPHRASE_ENVVAR = "DEPLOYER_PASSPHRASE"


def is_local_network() -> bool:
    return networks.provider.network.name in LOCAL_NETWORK_NAMES


def _get_dependency_contract_container(contract: str) -> ContractContainer:
    for dependency_name, dependency_versions in project.dependencies.items():
        if len(dependency_versions) > 1:
            raise ValueError(f"Ambiguous {dependency_name} dependency for {contract}")
        try:
            dependency_api = list(dependency_versions.values())[0]
            contract_container = getattr(dependency_api, contract)
            return contract_container
        except AttributeError:
            continue
    raise ValueError(f"No contract found with name '{contract}'.")


def get_contract_container(contract: str) -> ContractContainer:
    try:
        contract_container = getattr(project, contract)
    except AttributeError:
        # not in root project; check dependencies
        contract_container = _get_dependency_contract_container(contract)

    return contract_container


def get_deployer_account() -> AccountAPI:
    """
    Returns the signer for this run.

    Local networks use the first test account. Otherwise the account alias is
    read from $DEPLOYER_ACCOUNT, falling back to an interactive prompt.
    """
    if is_local_network():
        return accounts.test_accounts[0]

    alias = os.environ.get(DEPLOYER_ACCOUNT_ENVVAR)
    account = accounts.load(alias) if alias else select_account()

    passphrase = os.environ.get(DEPLOYER_PASSPHRASE_ENVVAR)
    if passphrase and hasattr(account, "set_autosign"):
        account.set_autosign(True, passphrase=passphrase)
    return account


def network_context(
    deployer: AccountAPI, name: Optional[str] = None, rpc_url: Optional[str] = None
) -> NetworkContext:
    """Describes the connected network; ``rpc_url`` is shown when the provider has no URI."""
    provider = networks.provider
    return NetworkContext(
        chain_id=provider.network.chain_id,
        name=name or provider.network.name,
        rpc_url=getattr(provider, "uri", None) or rpc_url,
        deployer=to_checksum_address(deployer.address),
    )


def validate_chain_id(chain_id: ChainId) -> None:
    """The params file must target the network ape is connected to."""
    connected_chain_id = networks.provider.network.chain_id
    if chain_id != connected_chain_id and not is_local_network():
        raise DeploymentConfigError(
            f"chain_id in params file ({chain_id}) does not match "
            f"chain_id of current network ({connected_chain_id})."
        )


class ApeContractFactory(ContractFactory):
    def build_transaction(
        self, contract_name: str, args: Sequence[Any], sender: ChecksumAddress
    ) -> TransactionAPI:
        container = get_contract_container(contract_name)
        return container.constructor.serialize_transaction(*args, sender=sender)

    def constructor_inputs(self, contract_name: str) -> List[Dict[str, str]]:
        container = get_contract_container(contract_name)
        return [
            {"name": abi_input.name, "type": abi_input.type}
            for abi_input in container.constructor.abi.inputs
        ]

    def at(self, contract_name: str, address: ChecksumAddress) -> ContractInstance:
        return get_contract_container(contract_name).at(address)


class ApeChainClient(ChainClient):
    """Chain client backed by the connected ape provider and a signing account."""

    def __init__(self, account: AccountAPI):
        self.account = account

    @property
    def provider(self):
        return networks.provider

    def estimate_gas(self, transaction: TransactionAPI) -> int:
        return self.provider.estimate_gas_cost(transaction)

    def submit(self, transaction: TransactionAPI, gas_limit: int) -> PendingTransaction:
        transaction.gas_limit = gas_limit
        transaction = self.account.prepare_transaction(transaction)
        signed_transaction = self.account.sign_transaction(transaction)
        if signed_transaction is None:
            raise ValueError(f"{self.account.address} did not sign the creation transaction")

        txn_hash = self.provider.web3.eth.send_raw_transaction(
            signed_transaction.serialize_transaction()
        )
        return PendingTransaction(tx_hash=to_hex(txn_hash), handle=signed_transaction)

    def wait_for_confirmation(
        self, pending: PendingTransaction, timeout: int
    ) -> Tuple[Optional[ChecksumAddress], Receipt]:
        try:
            receipt = self.provider.get_receipt(pending.tx_hash, timeout=timeout)
        except TransactionNotFoundError as error:
            raise ConfirmationTimeout(
                f"Transaction {pending.tx_hash} was not mined within {timeout}s", cause=error
            ) from error

        address = receipt.contract_address
        return (
            to_checksum_address(address) if address else None,
            Receipt(
                block_number=receipt.block_number,
                gas_used=receipt.gas_used,
                effective_gas_price=receipt.gas_price,
                status=0 if receipt.failed else 1,
            ),
        )

    def call(self, contract: ContractInstance, method: str, args: Sequence[Any]) -> Any:
        accessor = getattr(contract, method)
        if callable(accessor):
            return accessor(*args)
        # read as a plain attribute
        return accessor

    def resolve_network(self) -> Tuple[str, ChainId]:
        network = self.provider.network
        return network.name, network.chain_id

    def get_balance(self, address: ChecksumAddress) -> int:
        return self.provider.get_balance(address)
