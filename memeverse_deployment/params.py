import typing
from abc import ABC, abstractmethod
from collections import OrderedDict
from pathlib import Path
from typing import Any, List, NamedTuple, Optional, Set, Tuple

from ape.api import AccountAPI, ReceiptAPI
from ape.cli.choices import select_account
from ape.contracts.base import ContractTransactionHandler
from eth_abi import encode, is_encodable
from eth_abi.grammar import TupleType, parse
from eth_utils import is_address, to_bytes, to_checksum_address

from memeverse_deployment.config import EnvironmentConfig
from memeverse_deployment.confirm import _confirm_resolution, _continue
from memeverse_deployment.constants import (
    DEFAULT_MAX_VERIFICATION_ATTEMPTS,
    ENDPOINTS_VARIABLE,
)
from memeverse_deployment.create3 import make_salt
from memeverse_deployment.routes import RouteTable, endpoint_ids
from memeverse_deployment.utils import _load_yaml

CONTRACT_CONSTRUCTOR_PARAMETER_KEY = "constructor"
CONTRACT_CONFIGURE_PARAMETER_KEY = "configure"


class InvalidDeploymentSpec(ValueError):
    """Raised when a deployment params file or its constructor arguments are invalid."""


class VariableContext:
    def __init__(
        self,
        contract_name: str,
        environment: EnvironmentConfig,
        deployer_address: Optional[str] = None,
        routes: Optional[RouteTable] = None,
    ):
        self.contract_name = contract_name
        self.environment = environment
        self.deployer_address = deployer_address
        self.routes = routes


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
        if context.deployer_address is None:
            raise InvalidDeploymentSpec("'$deployer' used but no deployer account is selected.")
        self.address = context.deployer_address

    @classmethod
    def is_deployer(cls, value: str) -> bool:
        """Returns True if the variable is a special deployer variable."""
        return value == cls.DEPLOYER_INDICATOR

    def resolve(self) -> Any:
        return self.address


class EnvironmentValue(Variable):
    def __init__(self, name: str, context: VariableContext):
        self.name = name
        self.value = context.environment.get(name)

    @classmethod
    def is_environment_value(cls, value: str) -> bool:
        """Returns True if the variable names an environment value."""
        return value.isupper()

    def resolve(self) -> Any:
        return self.value


class Endpoints(Variable):
    """The (chainId, endpointId) pairs of the peers this contract sends to."""

    def __init__(self, context: VariableContext):
        if context.routes is None:
            raise InvalidDeploymentSpec(
                f"'${ENDPOINTS_VARIABLE}' used by {context.contract_name} "
                f"but no route table is loaded."
            )
        self.endpoints = endpoint_ids(context.routes, context.contract_name)
        if not self.endpoints:
            raise InvalidDeploymentSpec(
                f"Route table has no outbound connections for {context.contract_name}."
            )

    @classmethod
    def is_endpoints(cls, value: str) -> bool:
        return value == ENDPOINTS_VARIABLE

    def resolve(self) -> Any:
        return list(self.endpoints)


def _variable_from_value(variable: str, context: VariableContext) -> Variable:
    variable = variable[len(Variable.VARIABLE_PREFIX) :]
    if DeployerAccount.is_deployer(variable):
        return DeployerAccount(context)
    elif Endpoints.is_endpoints(variable):
        return Endpoints(context)
    elif EnvironmentValue.is_environment_value(variable):
        return EnvironmentValue(variable, context)
    raise InvalidDeploymentSpec(f"Unknown variable '${variable}' for {context.contract_name}.")


def _resolve_param(value: Any, context: VariableContext) -> Any:
    """Resolves a single parameter value or a list of parameter values."""
    if isinstance(value, list):
        return [_resolve_param(v, context) for v in value]

    if Variable.is_variable(value):
        return _variable_from_value(value, context).resolve()

    return value  # literally a value


def _environment_names(value: Any) -> Set[str]:
    if isinstance(value, dict):
        value = list(value.values())
    if isinstance(value, list):
        names = set()
        for v in value:
            names |= _environment_names(v)
        return names
    if Variable.is_variable(value):
        variable = value[len(Variable.VARIABLE_PREFIX) :]
        if EnvironmentValue.is_environment_value(variable):
            return {variable}
    return set()


def required_environment(config: typing.Dict) -> Set[str]:
    """All environment values referenced by a params file."""
    return _environment_names(
        [
            config.get(CONTRACT_CONSTRUCTOR_PARAMETER_KEY, {}).get("args", {}),
            config.get(CONTRACT_CONFIGURE_PARAMETER_KEY, []),
        ]
    )


# ABI typing


def coerce_value(abi_type: str, value: Any) -> Any:
    """Converts configuration strings (usually environment values) to their ABI type."""
    return _coerce(parse(abi_type), value)


def _coerce(abi_type, value: Any) -> Any:
    if abi_type.is_array:
        if not isinstance(value, (list, tuple)):
            return value
        return [_coerce(abi_type.item_type, v) for v in value]

    if isinstance(abi_type, TupleType):
        if not isinstance(value, (list, tuple)) or len(value) != len(abi_type.components):
            return value
        return tuple(_coerce(t, v) for t, v in zip(abi_type.components, value))

    if not isinstance(value, str):
        return value

    base = abi_type.base
    if base == "address":
        return to_checksum_address(value) if is_address(value) else value
    if base in ("uint", "int"):
        try:
            return int(value, 0)
        except ValueError:
            return value
    if base == "bool":
        flag = value.strip().lower()
        if flag in ("1", "true", "yes"):
            return True
        if flag in ("0", "false", "no"):
            return False
        return value
    if base == "bytes":
        try:
            return to_bytes(hexstr=value)
        except ValueError:
            return value
    return value


def canonical_type(abi_input: typing.Dict) -> str:
    """Canonical type string of an ABI input, expanding tuple components."""
    abi_type = abi_input["type"]
    if abi_type.startswith("tuple"):
        components = ",".join(canonical_type(c) for c in abi_input.get("components", []))
        return f"({components}){abi_type[len('tuple'):]}"
    return abi_type


def _validate_method_args(
    method_abis: List[Any], args: typing.Sequence[Any]
) -> typing.Dict[str, Any]:
    """Validates the transaction arguments against the function ABI."""
    if len(method_abis) == 0:
        raise ValueError("No method abis provided for validation of args")

    abis_matching_args_length = [abi for abi in method_abis if len(abi.inputs) == len(args)]
    for abi in abis_matching_args_length:
        named_args = {}
        for arg, abi_input in zip(args, abi.inputs):
            if not is_encodable(abi_input.canonical_type, arg):
                break
            named_args[abi_input.name] = arg
        else:
            return named_args
    raise ValueError(
        f"Could not find ABI for '{method_abis[0].name}' with {len(args)} arg(s) and given type(s)"
    )


# Specs


class SaltSeed(NamedTuple):
    label: str
    version: int

    @property
    def salt(self) -> bytes:
        return make_salt(self.label, self.version)


class AdminCall(NamedTuple):
    """A post-deployment administrative call, e.g. setLockupDaysRange(180, 365)."""

    method: str
    args: Tuple[Any, ...] = ()

    def __str__(self) -> str:
        return f"{self.method}({', '.join(map(str, self.args))})"


class DeploymentSpec(NamedTuple):
    """Immutable description of one deterministic deployment task."""

    contract_name: str
    constructor_types: Tuple[str, ...]
    constructor_args: Tuple[Any, ...]
    salt_seed: SaltSeed
    chain_id: Optional[int] = None
    max_verification_attempts: int = DEFAULT_MAX_VERIFICATION_ATTEMPTS
    admin_calls: Tuple[AdminCall, ...] = ()
    constructor_names: Tuple[str, ...] = ()

    @property
    def salt(self) -> bytes:
        return self.salt_seed.salt

    def encode_constructor_args(self) -> bytes:
        if len(self.constructor_args) != len(self.constructor_types):
            raise InvalidDeploymentSpec(
                f"Constructor parameters length mismatch - {self.contract_name} signature "
                f"requires {len(self.constructor_types)}, got {len(self.constructor_args)}."
            )
        codex = enumerate(zip(self.constructor_types, self.constructor_args))
        for position, (abi_type, value) in codex:
            if not is_encodable(abi_type, value):
                raise InvalidDeploymentSpec(
                    f"{self.contract_name} constructor param at position {position} has a "
                    f"value '{value}' whose type does not match expected ABI type '{abi_type}'"
                )
        return encode(list(self.constructor_types), list(self.constructor_args))

    def init_code(self, bytecode: bytes) -> bytes:
        return bytes(bytecode) + self.encode_constructor_args()

    def check_abi(self, abi: List[typing.Dict]) -> None:
        """Checks the declared signature against the artifact's constructor, if it has one."""
        constructors = [entry for entry in abi if entry.get("type") == "constructor"]
        if not constructors:
            if self.constructor_types:
                raise InvalidDeploymentSpec(
                    f"{self.contract_name} ABI has no constructor but "
                    f"{len(self.constructor_types)} constructor type(s) are declared."
                )
            return
        abi_types = tuple(canonical_type(i) for i in constructors[0].get("inputs", []))
        if abi_types != tuple(self.constructor_types):
            raise InvalidDeploymentSpec(
                f"{self.contract_name} constructor signature ({', '.join(self.constructor_types)}) "
                f"does not match the artifact ABI ({', '.join(abi_types)})."
            )

    def check_chain_id(self, chain_id: int, local: bool = False) -> None:
        """Checks that the params file targets the chain of the connected provider."""
        if self.chain_id is None or local:
            return
        if self.chain_id != chain_id:
            raise InvalidDeploymentSpec(
                f"chain_id in params file ({self.chain_id}) does not match "
                f"chain_id of current network ({chain_id})."
            )

    def resolved_parameters(self) -> OrderedDict:
        names = self.constructor_names or [f"arg{i}" for i in range(len(self.constructor_args))]
        return OrderedDict(zip(names, self.constructor_args))

    @classmethod
    def from_config(
        cls,
        config: typing.Dict,
        environment: EnvironmentConfig,
        deployer_address: Optional[str] = None,
        routes: Optional[RouteTable] = None,
    ) -> "DeploymentSpec":
        deployment = config.get("deployment")
        if not deployment or not deployment.get("name"):
            raise InvalidDeploymentSpec("deployment name is not set in params file.")
        contract_name = deployment["name"]

        # fail before any chain interaction if anything is missing
        environment.require(*required_environment(config))

        salt_config = config.get("salt") or dict()
        if "version" not in salt_config:
            raise InvalidDeploymentSpec(f"salt version is not set for {contract_name}.")
        salt_seed = SaltSeed(
            label=str(salt_config.get("label", contract_name)),
            version=int(salt_config["version"]),
        )

        context = VariableContext(
            contract_name=contract_name,
            environment=environment,
            deployer_address=deployer_address,
            routes=routes,
        )

        constructor = config.get(CONTRACT_CONSTRUCTOR_PARAMETER_KEY) or dict()
        types = tuple(constructor.get("signature") or ())
        raw_args = constructor.get("args") or OrderedDict()
        if not isinstance(raw_args, dict):
            raise InvalidDeploymentSpec(f"Malformed constructor args for {contract_name}.")
        if len(raw_args) != len(types):
            raise InvalidDeploymentSpec(
                f"Constructor parameters length mismatch - {contract_name} signature "
                f"requires {len(types)}, got {len(raw_args)}."
            )
        args = tuple(
            coerce_value(abi_type, _resolve_param(value, context))
            for abi_type, value in zip(types, raw_args.values())
        )

        admin_calls = list()
        for entry in config.get(CONTRACT_CONFIGURE_PARAMETER_KEY) or []:
            if not isinstance(entry, dict) or len(entry) != 1:
                raise InvalidDeploymentSpec(f"Malformed configure entry for {contract_name}.")
            method, method_args = list(entry.items())[0]
            if method_args is None:
                method_args = []
            elif not isinstance(method_args, list):
                method_args = [method_args]
            admin_calls.append(
                AdminCall(method=method, args=tuple(_resolve_param(method_args, context)))
            )

        verification = config.get("verification") or dict()
        max_attempts = int(verification.get("max_attempts", DEFAULT_MAX_VERIFICATION_ATTEMPTS))
        if max_attempts < 1:
            raise InvalidDeploymentSpec(
                f"verification max_attempts must be at least 1 for {contract_name}, "
                f"got {max_attempts}."
            )
        chain_id = deployment.get("chain_id")

        return cls(
            contract_name=contract_name,
            constructor_types=types,
            constructor_args=args,
            salt_seed=salt_seed,
            chain_id=int(chain_id) if chain_id is not None else None,
            max_verification_attempts=max_attempts,
            admin_calls=tuple(admin_calls),
            constructor_names=tuple(raw_args.keys()),
        )

    @classmethod
    def from_yaml(cls, filepath: Path, *args, **kwargs) -> "DeploymentSpec":
        print(f"Processing deployment parameters {filepath}...")
        config = _load_yaml(filepath)
        return cls.from_config(config, *args, **kwargs)


class Transactor:
    """
    Represents an ape account plus validated/annotated transaction execution.
    """

    def __init__(self, account: typing.Optional[AccountAPI] = None, autosign: bool = False):
        if account is None:
            self._account = select_account()
        else:
            self._account = account
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        self._autosign = autosign
        self._account.set_autosign(autosign)

    @property
    def autosign(self) -> bool:
        return self._autosign

    def get_account(self) -> AccountAPI:
        """Returns the transactor account."""
        return self._account

    def confirm_deployment(self, spec: DeploymentSpec) -> None:
        if not self._autosign:
            _confirm_resolution(spec.resolved_parameters(), spec.contract_name)

    def transact(self, method: ContractTransactionHandler, *args, **kwargs) -> ReceiptAPI:
        named_args = _validate_method_args(method_abis=method.abis, args=args)
        contract_name = method.contract.contract_type.name or "Contract"
        base_message = (
            f"\nTransacting {contract_name}"
            f"[{method.contract.address[:10]}].{method.abis[0].name}"
        )
        if named_args:
            pretty_args = "\n\t".join(f"{k}={v}" for k, v in named_args.items())
            message = f"{base_message} with arguments:\n\t{pretty_args}"
        else:
            message = f"{base_message} with no arguments"
        print(message)
        if not self._autosign:
            _continue()

        return method(*args, sender=self._account, **kwargs)
