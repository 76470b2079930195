"""
Collaborator boundaries of the pipeline.

The pipeline only ever talks to these two interfaces; concrete chain SDK
bindings live in ``deploy_pipeline.chain``.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence, Tuple

from eth_typing import ChecksumAddress

from deploy_pipeline.models import ChainId, ContractName, PendingTransaction, Receipt


class ChainClient(ABC):
    """Reads from and broadcasts to a single connected network."""

    @abstractmethod
    def estimate_gas(self, transaction: Any) -> int:
        raise NotImplementedError

    @abstractmethod
    def submit(self, transaction: Any, gas_limit: int) -> PendingTransaction:
        """Signs and broadcasts the transaction; returns once it is in the mempool."""
        raise NotImplementedError

    @abstractmethod
    def wait_for_confirmation(
        self, pending: PendingTransaction, timeout: int
    ) -> Tuple[ChecksumAddress, Receipt]:
        """Blocks until the transaction is mined; returns the created address and receipt."""
        raise NotImplementedError

    @abstractmethod
    def call(self, contract: Any, method: str, args: Sequence[Any]) -> Any:
        raise NotImplementedError

    @abstractmethod
    def resolve_network(self) -> Tuple[str, ChainId]:
        raise NotImplementedError

    @abstractmethod
    def get_balance(self, address: ChecksumAddress) -> int:
        raise NotImplementedError


class ContractFactory(ABC):
    """Turns contract names into creation transactions and bound handles."""

    @abstractmethod
    def build_transaction(
        self, contract_name: ContractName, args: Sequence[Any], sender: ChecksumAddress
    ) -> Any:
        raise NotImplementedError

    @abstractmethod
    def constructor_inputs(self, contract_name: ContractName) -> List[Dict[str, str]]:
        raise NotImplementedError

    @abstractmethod
    def at(self, contract_name: ContractName, address: ChecksumAddress) -> Any:
        raise NotImplementedError
