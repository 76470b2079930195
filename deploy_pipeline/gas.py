from typing import Tuple

from deploy_pipeline.constants import DEFAULT_GAS_MARGIN
from deploy_pipeline.exceptions import EstimationFailed
from deploy_pipeline.interfaces import ChainClient, ContractFactory
from deploy_pipeline.models import DeploymentTarget, GasPlan, NetworkContext


def validate_margin(margin: Tuple[int, int]) -> Tuple[int, int]:
    numerator, denominator = margin
    if not isinstance(numerator, int) or not isinstance(denominator, int):
        raise ValueError(f"Gas margin must be a ratio of integers, got {margin!r}")
    if denominator <= 0:
        raise ValueError(f"Gas margin denominator must be positive, got {denominator}")
    if numerator < denominator:
        raise ValueError(
            f"Gas margin {numerator}/{denominator} is below 1 and would underestimate gas"
        )
    return numerator, denominator


def compute_gas_limit(estimated: int, margin: Tuple[int, int] = DEFAULT_GAS_MARGIN) -> GasPlan:
    """Applies the safety margin to a raw estimate, rounding up."""
    numerator, denominator = validate_margin(margin)
    if estimated < 0:
        raise ValueError(f"Gas estimate cannot be negative, got {estimated}")
    limit = -(-estimated * numerator // denominator)  # ceil without floats
    return GasPlan(
        estimated=estimated,
        limit=limit,
        margin_numerator=numerator,
        margin_denominator=denominator,
    )


def estimate_gas(
    client: ChainClient,
    factory: ContractFactory,
    target: DeploymentTarget,
    network: NetworkContext,
    margin: Tuple[int, int] = DEFAULT_GAS_MARGIN,
) -> GasPlan:
    """Estimates gas for the unsigned creation transaction of ``target``."""
    try:
        transaction = factory.build_transaction(
            target.contract_name, target.args, sender=network.deployer
        )
        estimated = int(client.estimate_gas(transaction))
    except Exception as error:
        raise EstimationFailed(
            f"Could not estimate gas for {target.contract_name}: {error}", cause=error
        ) from error
    return compute_gas_limit(estimated, margin)
