from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from eth_utils import to_checksum_address

from deploy_pipeline.interfaces import ChainClient, ContractFactory
from deploy_pipeline.models import (
    DeploymentTarget,
    NetworkContext,
    PendingTransaction,
    Receipt,
    VerificationStep,
)
from deploy_pipeline.pipeline import PipelineSettings
from deploy_pipeline.reporting import PipelineObserver

# Common constants
DEPLOYER = to_checksum_address("0x" + "ab" * 20)
GAS_ESTIMATE = 1_000_000
GAS_USED = 900_000
GAS_PRICE = 50 * 10**9
FIXED_TIMESTAMP = "2025-01-01T00:00:00.000Z"


def fake_address(index: int) -> str:
    return to_checksum_address(f"0x{index:040x}")


class FakeChainClient(ChainClient):
    """In-memory chain; every submission creates a contract at a new address."""

    def __init__(self):
        self.gas_estimate = GAS_ESTIMATE
        self.status = 1
        self.balance = 10**18
        self.estimate_error: Optional[Exception] = None
        self.submit_error: Optional[Exception] = None
        self.wait_error: Optional[Exception] = None
        self.no_address = False
        self.values: Dict[str, Any] = dict()
        self.estimated: List[Any] = list()
        self.submitted: List[Any] = list()
        self.waited: List[int] = list()
        self.calls: List[Any] = list()

    def estimate_gas(self, transaction):
        self.estimated.append(transaction)
        if self.estimate_error:
            raise self.estimate_error
        return self.gas_estimate

    def submit(self, transaction, gas_limit):
        if self.submit_error:
            raise self.submit_error
        self.submitted.append((transaction, gas_limit))
        nonce = len(self.submitted)
        return PendingTransaction(tx_hash=f"0x{nonce:064x}", handle=nonce)

    def wait_for_confirmation(self, pending, timeout):
        self.waited.append(timeout)
        if self.wait_error:
            raise self.wait_error
        address = None if self.no_address else fake_address(pending.handle)
        receipt = Receipt(
            block_number=100 + pending.handle,
            gas_used=GAS_USED,
            effective_gas_price=GAS_PRICE,
            status=self.status,
        )
        return address, receipt

    def call(self, contract, method, args):
        self.calls.append((method, tuple(args)))
        try:
            value = self.values[method]
        except KeyError:
            raise AttributeError(f"{contract} has no attribute '{method}'")
        if isinstance(value, Exception):
            raise value
        if callable(value):
            return value(*args)
        return value

    def resolve_network(self):
        return "monad-testnet", 10143

    def get_balance(self, address):
        return self.balance


class FakeContractFactory(ContractFactory):
    def __init__(self, inputs: Optional[Dict[str, List[Dict[str, str]]]] = None):
        self.inputs = inputs or dict()
        self.bind_error: Optional[Exception] = None
        self.bound: List[Any] = list()

    def build_transaction(self, contract_name, args, sender):
        return {"contract": contract_name, "args": tuple(args), "sender": sender}

    def constructor_inputs(self, contract_name):
        return self.inputs.get(contract_name, [])

    def at(self, contract_name, address):
        if self.bind_error:
            raise self.bind_error
        self.bound.append((contract_name, address))
        return f"<{contract_name} {address}>"


class RecordingObserver(PipelineObserver):
    def __init__(self):
        self.events = list()

    def stage_entered(self, state, target):
        self.events.append(("entered", state))

    def stage_completed(self, state, target, result):
        self.events.append(("completed", state))

    def stage_failed(self, state, target, error):
        self.events.append(("failed", state, type(error)))

    def check_completed(self, target, step, outcome):
        self.events.append(("check", step.name, outcome.status))


# Fixtures
@pytest.fixture
def client():
    return FakeChainClient()


@pytest.fixture
def factory():
    return FakeContractFactory()


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def network():
    return NetworkContext(
        chain_id=10143,
        name="monad-testnet",
        rpc_url="https://testnet-rpc.monad.xyz/",
        deployer=DEPLOYER,
    )


@pytest.fixture
def target():
    return DeploymentTarget(
        contract_name="CampusCredit",
        args=(100_000,),
        checks=(
            VerificationStep(name="DEFAULT_ADMIN_ROLE", method="DEFAULT_ADMIN_ROLE"),
            VerificationStep(name="symbol", method="symbol", expected="string"),
        ),
        manifest_name="campusCredit",
    )


@pytest.fixture
def manifest_dir(tmp_path) -> Path:
    return tmp_path / "deployments"


@pytest.fixture
def settings(manifest_dir):
    return PipelineSettings(
        gas_margin=(120, 100),
        confirmation_timeout=30,
        manifest_dir=manifest_dir,
        explorer="https://testnet.monadexplorer.com/address/{address}",
    )
