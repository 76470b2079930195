from collections import OrderedDict
from typing import Any, List, NamedTuple, Optional, Tuple, Union

from eth_typing import ChecksumAddress

from deploy_pipeline.constants import CHECK_OK
from deploy_pipeline.exceptions import DeploymentError

ChainId = int
ContractName = str


class VerificationStep(NamedTuple):
    """A named read-only probe run against a freshly deployed contract."""

    name: str
    method: str
    args: Tuple[Any, ...] = ()
    expected: Optional[str] = None  # ABI type the value must be encodable as


class DeploymentTarget(NamedTuple):
    """What to deploy: contract name, resolved constructor args and probes."""

    contract_name: ContractName
    args: Tuple[Any, ...] = ()
    checks: Tuple[VerificationStep, ...] = ()
    manifest_name: Optional[str] = None

    @property
    def manifest_stem(self) -> str:
        return self.manifest_name or self.contract_name


class NetworkContext(NamedTuple):
    chain_id: ChainId
    name: str
    rpc_url: Optional[str]
    deployer: ChecksumAddress


class GasPlan(NamedTuple):
    estimated: int
    limit: int
    margin_numerator: int
    margin_denominator: int


class Receipt(NamedTuple):
    block_number: int
    gas_used: int
    effective_gas_price: int
    status: int = 1

    @property
    def cost(self) -> int:
        return self.gas_used * self.effective_gas_price


class PendingTransaction(NamedTuple):
    tx_hash: str
    handle: Any = None  # adapter specific, opaque to the pipeline


class Confirmed(NamedTuple):
    address: ChecksumAddress
    tx_hash: str
    receipt: Receipt

    @property
    def cost(self) -> int:
        return self.receipt.cost


class Failed(NamedTuple):
    error: DeploymentError


DeploymentResult = Union[Confirmed, Failed]


class CheckOutcome(NamedTuple):
    status: str
    value: Any = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == CHECK_OK


class VerificationReport(OrderedDict):
    """Probe name -> CheckOutcome, in declaration order."""

    @property
    def passed(self) -> bool:
        return all(outcome.ok for outcome in self.values())

    @property
    def failures(self) -> List[str]:
        return [name for name, outcome in self.items() if not outcome.ok]


class DeploymentRecord(NamedTuple):
    """The persisted manifest of a completed deployment."""

    contract_address: ChecksumAddress
    deployer_address: ChecksumAddress
    network: str
    chain_id: ChainId
    block_explorer: str
    timestamp: str
    tx_hash: Optional[str]
