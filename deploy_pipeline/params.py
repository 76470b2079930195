import re
import time
import typing
from abc import ABC, abstractmethod
from collections import OrderedDict
from pathlib import Path
from typing import Any, List, NamedTuple, Optional, Tuple

from eth_typing import ChecksumAddress
from web3.auto import w3

from deploy_pipeline.constants import (
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_GAS_MARGIN,
    DEFAULT_MIN_BALANCE,
    MANIFESTS_DIR,
    MONAD_CURRENCY,
)
from deploy_pipeline.exceptions import DeploymentConfigError
from deploy_pipeline.gas import validate_margin
from deploy_pipeline.interfaces import ContractFactory
from deploy_pipeline.manifest import explorer_url
from deploy_pipeline.models import DeploymentTarget, VerificationStep
from deploy_pipeline.pipeline import PipelineSettings
from deploy_pipeline.utils import _load_yaml, parse_wei

CONTRACT_CONSTRUCTOR_PARAMETER_KEY = "constructor"
CONTRACT_VERIFY_PARAMETER_KEY = "verify"
CONTRACT_MANIFEST_PARAMETER_KEY = "manifest"

EXPLORER_PLACEHOLDER_ADDRESS = "0x" + "00" * 20


class VariableContext:
    def __init__(
        self,
        deployer: ChecksumAddress,
        constants: typing.Dict[str, Any] = None,
        now: Optional[int] = None,
    ):
        self.deployer = deployer
        self.constants = constants or dict()
        self.now = int(time.time()) if now is None else now


# Variables


class Variable(ABC):
    VARIABLE_PREFIX = "$"

    @abstractmethod
    def resolve(self) -> Any:
        raise NotImplementedError

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        """Returns True if the param is a variable."""
        result = isinstance(param, str) and param.startswith(cls.VARIABLE_PREFIX)
        return result


class DeployerAccount(Variable):
    DEPLOYER_INDICATOR = "deployer"

    def __init__(self, context: VariableContext):
        self.address = context.deployer

    @classmethod
    def is_deployer(cls, value: str) -> bool:
        """Returns True if the variable is a special deployer variable."""
        return value == cls.DEPLOYER_INDICATOR

    def resolve(self) -> Any:
        return self.address


class Constant(Variable):
    def __init__(self, constant_name: str, context: VariableContext):
        try:
            self.constant_value = context.constants[constant_name]
        except KeyError:
            raise DeploymentConfigError(
                f"Constant '{constant_name}' not found in deployment file."
            )

    @classmethod
    def is_constant(cls, value: str) -> bool:
        """Returns True if the variable is a deployment constant."""
        return value.isupper()

    def resolve(self) -> Any:
        return self.constant_value


class Timestamp(Variable):
    """UNIX time at load, optionally shifted: $now, $now+60, $now-3600"""

    PATTERN = re.compile(r"^now(?:\s*([+-])\s*(\d+))?$")

    def __init__(self, variable: str, context: VariableContext):
        match = self.PATTERN.match(variable)
        if not match:
            raise DeploymentConfigError(f"Malformed timestamp variable '${variable}'")
        sign, offset = match.groups()
        offset = int(offset or 0)
        self.value = context.now - offset if sign == "-" else context.now + offset

    @classmethod
    def is_timestamp(cls, value: str) -> bool:
        return value.startswith("now")

    def resolve(self) -> Any:
        return self.value


def _variable_from_value(variable: str, context: VariableContext) -> Variable:
    variable = variable[len(Variable.VARIABLE_PREFIX) :].strip()
    if DeployerAccount.is_deployer(variable):
        return DeployerAccount(context)
    elif Timestamp.is_timestamp(variable):
        return Timestamp(variable, context)
    elif Constant.is_constant(variable):
        return Constant(variable, context)
    raise DeploymentConfigError(f"Variable '${variable}' is not resolvable")


def _resolve_param(value: Any, context: VariableContext) -> Any:
    """Resolves a single parameter value or a list of parameter values."""
    if isinstance(value, list):
        return [_resolve_param(v, context) for v in value]

    if Variable.is_variable(value):
        return _variable_from_value(value, context).resolve()

    return value  # literally a value


def _resolve_params(parameters: typing.Mapping, context: VariableContext) -> OrderedDict:
    resolved_parameters = OrderedDict()
    for name, value in parameters.items():
        resolved_parameters[name] = _resolve_param(value, context)
    return resolved_parameters


def _validate_constructor_abi_inputs(
    contract_name: str,
    abi_inputs: List[typing.Dict[str, str]],
    resolved_parameters: OrderedDict,
) -> None:
    """Validates the constructor parameters against the constructor ABI."""
    if len(resolved_parameters) != len(abi_inputs):
        raise DeploymentConfigError(
            f"Constructor parameters length mismatch - "
            f"{contract_name} ABI requires {len(abi_inputs)}, Got {len(resolved_parameters)}."
        )

    codex = enumerate(zip(abi_inputs, resolved_parameters.items()), start=0)
    for position, (abi_input, resolved_input) in codex:
        name, value = resolved_input
        if abi_input["name"] != name:
            raise DeploymentConfigError(
                f"{contract_name} constructor parameter '{name}' at position {position} does "
                f"not match the expected ABI name '{abi_input['name']}'."
            )

        if not w3.is_encodable(abi_input["type"], value):
            raise DeploymentConfigError(
                f"Constructor param name '{name}' at position {position} has a value '{value}' "
                f"whose type does not match expected ABI type '{abi_input['type']}'"
            )


def _process_verify_step(raw_step: Any, context: VariableContext) -> VerificationStep:
    if isinstance(raw_step, str):
        return VerificationStep(name=raw_step, method=raw_step)
    if not isinstance(raw_step, dict) or "name" not in raw_step:
        raise DeploymentConfigError(f"Malformed verification step {raw_step!r}.")

    args = raw_step.get("args") or []
    if not isinstance(args, list):
        raise DeploymentConfigError(
            f"Arguments of verification step {raw_step['name']} must be a list."
        )
    return VerificationStep(
        name=raw_step["name"],
        method=raw_step.get("method", raw_step["name"]),
        args=tuple(_resolve_param(arg, context) for arg in args),
        expected=raw_step.get("expect"),
    )


def _get_contract_entries(config: typing.Dict) -> List[Tuple[str, typing.Dict]]:
    entries = list()
    for contract_info in config["contracts"]:
        if isinstance(contract_info, str):
            entries.append((contract_info, dict()))
        elif isinstance(contract_info, dict) and len(contract_info) == 1:
            contract_name = list(contract_info.keys())[0]  # only one entry
            entries.append((contract_name, contract_info[contract_name] or dict()))
        else:
            raise DeploymentConfigError("Malformed constructor parameters YAML.")
    return entries


def validate_config(config: typing.Dict) -> None:
    """Checks the shape of a parameters file before anything touches the network."""
    if not isinstance(config, dict):
        raise DeploymentConfigError("Parameters file is empty or not a mapping.")

    deployment = config.get("deployment")
    if not deployment:
        raise DeploymentConfigError("deployment is not set in params file.")
    if not deployment.get("chain_id"):
        raise DeploymentConfigError("chain_id is not set in params file.")
    if not deployment.get("network"):
        raise DeploymentConfigError("network is not set in params file.")

    if not config.get("contracts"):
        raise DeploymentConfigError("Constructor parameters file missing 'contracts' field.")


def _validate_explorer_template(template: Any) -> str:
    if not isinstance(template, str):
        raise DeploymentConfigError(f"explorer must be a URL template, got {template!r}")
    try:
        explorer_url(template, EXPLORER_PLACEHOLDER_ADDRESS)
    except (KeyError, IndexError, ValueError, AttributeError) as error:
        raise DeploymentConfigError(
            f"Invalid explorer URL template {template!r}; only {{address}} may be used: {error!r}"
        ) from error
    return template


def _parse_margin(raw: Any) -> Tuple[int, int]:
    if raw is None:
        return DEFAULT_GAS_MARGIN
    try:
        if isinstance(raw, str):
            numerator, denominator = (int(part) for part in raw.split("/"))
        else:
            numerator, denominator = (int(part) for part in raw)
        return validate_margin((numerator, denominator))
    except (TypeError, ValueError) as error:
        raise DeploymentConfigError(f"Invalid gas_margin {raw!r}: {error}") from error


class DeploymentConfig(NamedTuple):
    """The deployment-wide section of a parameters file."""

    network: str
    chain_id: int
    rpc_url: Optional[str]
    currency: str
    min_balance: int
    settings: PipelineSettings

    @classmethod
    def from_config(cls, config: typing.Dict) -> "DeploymentConfig":
        validate_config(config)
        deployment = config["deployment"]
        artifacts = config.get("artifacts") or dict()

        manifest_dir = Path(artifacts.get("dir", MANIFESTS_DIR))

        timeout = int(deployment.get("confirmation_timeout", DEFAULT_CONFIRMATION_TIMEOUT))
        if timeout <= 0:
            raise DeploymentConfigError("confirmation_timeout must be positive.")

        try:
            min_balance = parse_wei(deployment.get("min_balance", DEFAULT_MIN_BALANCE))
        except ValueError as error:
            raise DeploymentConfigError(str(error)) from error

        settings = PipelineSettings(
            gas_margin=_parse_margin(deployment.get("gas_margin")),
            confirmation_timeout=timeout,
            manifest_dir=manifest_dir,
            explorer=_validate_explorer_template(
                deployment.get("explorer", PipelineSettings().explorer)
            ),
        )
        return cls(
            network=str(deployment["network"]),
            chain_id=int(deployment["chain_id"]),
            rpc_url=deployment.get("rpc_url"),
            currency=deployment.get("currency", MONAD_CURRENCY),
            min_balance=min_balance,
            settings=settings,
        )


class ConstructorParameters:
    """Represents the constructor parameters and probes for a set of contracts."""

    def __init__(self, config: typing.Dict, context: VariableContext):
        validate_config(config)
        self.context = context
        self.entries = _get_contract_entries(config)

    @classmethod
    def from_config(
        cls,
        config: typing.Dict,
        deployer: ChecksumAddress,
        now: Optional[int] = None,
    ) -> "ConstructorParameters":
        context = VariableContext(
            deployer=deployer, constants=config.get("constants"), now=now
        )
        return cls(config=config, context=context)

    @property
    def contract_names(self) -> List[str]:
        return [name for name, _ in self.entries]

    def resolve(self, contract_name: str) -> OrderedDict:
        """Resolves the constructor parameters for a single contract."""
        for name, contract_data in self.entries:
            if name == contract_name:
                parameters = contract_data.get(CONTRACT_CONSTRUCTOR_PARAMETER_KEY) or dict()
                return _resolve_params(parameters, self.context)
        raise DeploymentConfigError(f"Contract {contract_name} not found in params file.")

    def targets(self, factory: Optional[ContractFactory] = None) -> List[DeploymentTarget]:
        """
        Builds one deployment target per contract entry.

        When a factory is given, resolved constructor arguments are validated
        against the contract's constructor ABI.
        """
        targets = list()
        for contract_name, contract_data in self.entries:
            resolved = self.resolve(contract_name)
            if factory is not None:
                _validate_constructor_abi_inputs(
                    contract_name=contract_name,
                    abi_inputs=factory.constructor_inputs(contract_name),
                    resolved_parameters=resolved,
                )
            checks = tuple(
                _process_verify_step(step, self.context)
                for step in contract_data.get(CONTRACT_VERIFY_PARAMETER_KEY) or []
            )
            targets.append(
                DeploymentTarget(
                    contract_name=contract_name,
                    args=tuple(resolved.values()),
                    checks=checks,
                    manifest_name=contract_data.get(CONTRACT_MANIFEST_PARAMETER_KEY),
                )
            )
        return targets


def load_params(
    filepath: Path,
    deployer: ChecksumAddress,
    factory: Optional[ContractFactory] = None,
    now: Optional[int] = None,
) -> Tuple[DeploymentConfig, List[DeploymentTarget]]:
    config = _load_yaml(filepath)
    deployment_config = DeploymentConfig.from_config(config)
    parameters = ConstructorParameters.from_config(config, deployer=deployer, now=now)
    return deployment_config, parameters.targets(factory=factory)
