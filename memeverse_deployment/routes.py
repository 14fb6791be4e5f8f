"""
Static cross-chain messaging route table.

A route table declares the messaging endpoints (a LayerZero endpoint id plus
the local contract acting as peer) and the directed connections between them.
Each connection carries the send/receive libraries, the executor and the
verifier (DVN) sets for both directions. Confirmation depths are per edge and
need not be symmetric: a chain with slow finality
sends with more confirmations than it demands when receiving.

Validation is pure; pushing the table to the messaging configuration tooling
is done by exporting it (`export_route_table`).
"""

import json
from collections import Counter
from pathlib import Path
from typing import Dict, List, NamedTuple, Tuple

from eth_utils import is_address, to_checksum_address

from memeverse_deployment.constants import ENDPOINT_CHAIN_IDS, ENDPOINT_IDS
from memeverse_deployment.utils import _load_yaml

STANDARD_ROUTES_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class EndpointRef(NamedTuple):
    eid: int
    contract_name: str

    def __str__(self) -> str:
        return f"{self.contract_name}@{self.eid}"


class UlnConfig(NamedTuple):
    confirmations: int
    required_dvns: Tuple[str, ...]
    optional_dvns: Tuple[str, ...] = ()
    optional_dvn_threshold: int = 0


class ExecutorConfig(NamedTuple):
    max_message_size: int
    executor: str


class ReceiveLibraryConfig(NamedTuple):
    receive_library: str
    grace_period: int = 0


class SendConfig(NamedTuple):
    executor_config: ExecutorConfig
    uln_config: UlnConfig


class ReceiveConfig(NamedTuple):
    uln_config: UlnConfig


class RouteConfig(NamedTuple):
    send_library: str
    receive_library_config: ReceiveLibraryConfig
    send_config: SendConfig
    receive_config: ReceiveConfig


class Connection(NamedTuple):
    source: EndpointRef
    target: EndpointRef
    config: RouteConfig

    def __str__(self) -> str:
        return f"{self.source} -> {self.target}"


class RouteTable(NamedTuple):
    contracts: Tuple[EndpointRef, ...]
    connections: Tuple[Connection, ...]


class ValidationResult(NamedTuple):
    errors: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.ok


class InvalidRouteTable(ValueError):
    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__("Invalid route table:\n\t" + "\n\t".join(result.errors))


def _invalid(error: str) -> InvalidRouteTable:
    return InvalidRouteTable(ValidationResult(errors=(error,)))


#
# Validation
#


def _validate_address(errors: List[str], where: str, field: str, value: str) -> None:
    if not isinstance(value, str) or not is_address(value):
        errors.append(f"{where}: {field} '{value}' is not a valid address")


def _validate_uln(errors: List[str], where: str, uln: UlnConfig) -> None:
    if uln.confirmations < 1:
        errors.append(f"{where}: confirmations must be >= 1, got {uln.confirmations}")
    if not uln.required_dvns:
        errors.append(f"{where}: requiredDVNs must not be empty")
    if uln.optional_dvn_threshold < 0:
        errors.append(f"{where}: optionalDVNThreshold must not be negative")
    if uln.optional_dvn_threshold > len(uln.optional_dvns):
        errors.append(
            f"{where}: optionalDVNThreshold ({uln.optional_dvn_threshold}) exceeds "
            f"the number of optionalDVNs ({len(uln.optional_dvns)})"
        )
    for dvn in (*uln.required_dvns, *uln.optional_dvns):
        _validate_address(errors, where, "DVN", dvn)
    duplicated = [dvn for dvn, n in Counter(d.lower() for d in uln.required_dvns).items() if n > 1]
    if duplicated:
        errors.append(f"{where}: duplicated requiredDVNs {', '.join(duplicated)}")


def _validate_config(errors: List[str], where: str, config: RouteConfig) -> None:
    _validate_address(errors, where, "sendLibrary", config.send_library)
    _validate_address(
        errors, where, "receiveLibrary", config.receive_library_config.receive_library
    )
    if config.receive_library_config.grace_period < 0:
        errors.append(f"{where}: gracePeriod must not be negative")

    executor_config = config.send_config.executor_config
    if executor_config.max_message_size < 1:
        errors.append(f"{where}: maxMessageSize must be positive")
    _validate_address(errors, where, "executor", executor_config.executor)

    _validate_uln(errors, f"{where} (send)", config.send_config.uln_config)
    _validate_uln(errors, f"{where} (receive)", config.receive_config.uln_config)


def validate(table: RouteTable) -> ValidationResult:
    errors = list()

    declared = set(table.contracts)
    for ref, count in Counter(table.contracts).items():
        if count > 1:
            errors.append(f"{ref} is declared {count} times")

    edges = Counter()
    for connection in table.connections:
        where = str(connection)
        for ref in (connection.source, connection.target):
            if ref not in declared:
                errors.append(f"{where}: {ref} is not a declared contract")
        if connection.source == connection.target:
            errors.append(f"{where}: connection to itself")
        edges[(connection.source, connection.target)] += 1
        _validate_config(errors, where, connection.config)

    for (source, target), count in edges.items():
        if count > 1:
            errors.append(f"{source} -> {target}: duplicated connection ({count} times)")

    return ValidationResult(errors=tuple(errors))


def validate_or_raise(table: RouteTable) -> RouteTable:
    result = validate(table)
    if not result.ok:
        raise InvalidRouteTable(result)
    return table


def endpoint_ids(table: RouteTable, contract_name: str) -> List[Tuple[int, int]]:
    """
    Returns the (chain id, endpoint id) of every peer `contract_name` sends to,
    in connection order.
    """
    result = list()
    for connection in table.connections:
        if connection.source.contract_name != contract_name:
            continue
        eid = connection.target.eid
        try:
            chain_id = ENDPOINT_CHAIN_IDS[eid]
        except KeyError:
            raise _invalid(f"No chain id known for endpoint id {eid}")
        if (chain_id, eid) not in result:
            result.append((chain_id, eid))
    return result


#
# (De)serialization
#


def _eid(value) -> int:
    if isinstance(value, str):
        try:
            return ENDPOINT_IDS[value]
        except KeyError:
            raise _invalid(f"Unknown endpoint id '{value}'")
    return int(value)


def _uln_from_dict(data: Dict) -> UlnConfig:
    return UlnConfig(
        confirmations=int(data["confirmations"]),
        required_dvns=tuple(data.get("requiredDVNs") or ()),
        optional_dvns=tuple(data.get("optionalDVNs") or ()),
        optional_dvn_threshold=int(data.get("optionalDVNThreshold", 0)),
    )


def _config_from_dict(data: Dict) -> RouteConfig:
    receive_library = data["receiveLibraryConfig"]
    executor = data["sendConfig"]["executorConfig"]
    return RouteConfig(
        send_library=data["sendLibrary"],
        receive_library_config=ReceiveLibraryConfig(
            receive_library=receive_library["receiveLibrary"],
            grace_period=int(receive_library.get("gracePeriod", 0)),
        ),
        send_config=SendConfig(
            executor_config=ExecutorConfig(
                max_message_size=int(executor["maxMessageSize"]),
                executor=executor["executor"],
            ),
            uln_config=_uln_from_dict(data["sendConfig"]["ulnConfig"]),
        ),
        receive_config=ReceiveConfig(uln_config=_uln_from_dict(data["receiveConfig"]["ulnConfig"])),
    )


def route_table_from_dict(data: Dict) -> RouteTable:
    """
    Builds a route table from its declarative form.

    Contracts are declared under an alias and connections refer to aliases:

        contracts:
          bsc_testnet_center: {eid: BSC_V2_TESTNET, contractName: MemeverseRegistrationCenter}
        connections:
          - {from: bsc_testnet_center, to: base_sepolia_registrar, config: {...}}
    """
    aliases = dict()
    for alias, contract in (data.get("contracts") or {}).items():
        aliases[alias] = EndpointRef(
            eid=_eid(contract["eid"]), contract_name=contract["contractName"]
        )

    connections = list()
    for entry in data.get("connections") or []:
        try:
            source, target = aliases[entry["from"]], aliases[entry["to"]]
        except KeyError as e:
            raise _invalid(f"Connection refers to undeclared contract alias {e}")
        connections.append(
            Connection(source=source, target=target, config=_config_from_dict(entry["config"]))
        )

    return RouteTable(contracts=tuple(aliases.values()), connections=tuple(connections))


def load_route_table(filepath: Path) -> RouteTable:
    return route_table_from_dict(_load_yaml(filepath))


def _endpoint_to_dict(ref: EndpointRef) -> Dict:
    return {"eid": ref.eid, "contractName": ref.contract_name}


def _uln_to_dict(uln: UlnConfig) -> Dict:
    return {
        "confirmations": uln.confirmations,
        "requiredDVNs": [to_checksum_address(d) for d in uln.required_dvns],
        "optionalDVNs": [to_checksum_address(d) for d in uln.optional_dvns],
        "optionalDVNThreshold": uln.optional_dvn_threshold,
    }


def route_table_to_dict(table: RouteTable) -> Dict:
    """The table in the shape consumed by the LayerZero configuration tooling."""
    connections = list()
    for connection in table.connections:
        config = connection.config
        executor_config = config.send_config.executor_config
        connections.append(
            {
                "from": _endpoint_to_dict(connection.source),
                "to": _endpoint_to_dict(connection.target),
                "config": {
                    "sendLibrary": to_checksum_address(config.send_library),
                    "receiveLibraryConfig": {
                        "receiveLibrary": to_checksum_address(
                            config.receive_library_config.receive_library
                        ),
                        "gracePeriod": config.receive_library_config.grace_period,
                    },
                    "sendConfig": {
                        "executorConfig": {
                            "maxMessageSize": executor_config.max_message_size,
                            "executor": to_checksum_address(executor_config.executor),
                        },
                        "ulnConfig": _uln_to_dict(config.send_config.uln_config),
                    },
                    "receiveConfig": {"ulnConfig": _uln_to_dict(config.receive_config.uln_config)},
                },
            }
        )
    return {
        "contracts": [{"contract": _endpoint_to_dict(ref)} for ref in table.contracts],
        "connections": connections,
    }


def export_route_table(table: RouteTable, filepath: Path) -> Path:
    """Validates the table and writes it for the messaging configuration tooling."""
    validate_or_raise(table)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w") as file:
        json.dump(route_table_to_dict(table), file, **STANDARD_ROUTES_JSON_FORMAT)
    print(f"(i) Route table written to {filepath}!")
    return filepath
