import json
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional

from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from memeverse_deployment.utils import _load_json

ChainId = int
ContractName = str
ABI = List[Dict[str, Any]]


STANDARD_REGISTRY_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class RegistryEntry(NamedTuple):
    """Represents a single deterministic deployment in a contract registry."""

    chain_id: ChainId
    name: ContractName
    address: ChecksumAddress
    abi: ABI
    deployer: str
    salt: str


# what the executor hands out once a deployment landed
DeploymentRecord = RegistryEntry


def read_registry(filepath: Path) -> List[RegistryEntry]:
    data = _load_json(filepath)
    registry_entries = list()
    for chain_id, entries in data.items():
        for contract_name, artifacts in entries.items():
            registry_entry = RegistryEntry(
                chain_id=int(chain_id),
                name=contract_name,
                address=artifacts["address"],
                abi=artifacts["abi"],
                deployer=artifacts.get("deployer", ""),
                salt=artifacts.get("salt", ""),
            )
            registry_entries.append(registry_entry)
    return registry_entries


def write_registry(entries: List[RegistryEntry], filepath: Path) -> Path:
    """
    Writes registry entries to a file, merging them into an existing registry.
    An entry replaces any previous entry with the same chain id and name.
    """
    data = defaultdict(dict)
    if filepath.exists():
        for existing in read_registry(filepath):
            data[str(existing.chain_id)][existing.name] = existing

    for entry in entries:
        data[str(entry.chain_id)][entry.name] = entry

    # sort registry entries to enforce a common order
    output = dict()
    for chain_id in sorted(data, key=int):
        output[chain_id] = dict()
        for name in sorted(data[chain_id]):
            entry = data[chain_id][name]
            entry_abi = list(entry.abi)
            entry_abi.sort(key=lambda d: (d["type"], d.get("name", "")))
            output[chain_id][name] = {
                "address": to_checksum_address(entry.address),
                "abi": entry_abi,
                "deployer": entry.deployer,
                "salt": entry.salt,
            }

    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w") as file:
        json.dump(output, file, **STANDARD_REGISTRY_JSON_FORMAT)

    return filepath


class DeploymentRegistry:
    """Deployment record store keyed by chain id and contract name."""

    def __init__(self, filepath: Path):
        self.filepath = Path(filepath)

    def save(self, record: DeploymentRecord) -> None:
        if self.filepath.exists() and self.get(record.chain_id, record.name):
            print(f"(i) Replacing existing {record.name} entry in {self.filepath}")
        write_registry(entries=[record], filepath=self.filepath)
        print(f"(i) {record.name} saved to registry {self.filepath}")

    def get(self, chain_id: ChainId, name: ContractName) -> Optional[DeploymentRecord]:
        if not self.filepath.exists():
            return None
        for entry in read_registry(self.filepath):
            if entry.chain_id == chain_id and entry.name == name:
                return entry
        return None

    def records(self, chain_id: ChainId) -> Dict[ContractName, DeploymentRecord]:
        if not self.filepath.exists():
            return dict()
        return {e.name: e for e in read_registry(self.filepath) if e.chain_id == chain_id}
