from pathlib import Path
from typing import List, NamedTuple

from eth_utils import to_bytes

from memeverse_deployment.registry import ABI
from memeverse_deployment.utils import _load_json, get_contract_container


class ArtifactNotFound(FileNotFoundError):
    pass


class InvalidArtifact(ValueError):
    """Raised when an artifact is ambiguous or cannot be deployed."""


class Artifact(NamedTuple):
    name: str
    bytecode: bytes
    abi: ABI


def _bytecode(value) -> bytes:
    if isinstance(value, dict):
        # solc standard json output
        value = value.get("object", "")
    if not value or value in ("0x", "0x0"):
        return b""
    if not value.startswith("0x"):
        value = f"0x{value}"
    return to_bytes(hexstr=value)


class ArtifactStore:
    """Reads compiled contract artifacts (hardhat / foundry style JSON) from a build directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _find(self, contract_name: str) -> Path:
        candidates = self.directory.rglob(f"{contract_name}.json")
        matches = sorted(p for p in candidates if not p.name.endswith(".dbg.json"))
        if not matches:
            raise ArtifactNotFound(f"No artifact for {contract_name} under {self.directory}")
        if len(matches) > 1:
            raise InvalidArtifact(
                f"Artifact for {contract_name} is ambiguous: {', '.join(map(str, matches))}"
            )
        return matches[0]

    def read_artifact(self, contract_name: str) -> Artifact:
        data = _load_json(self._find(contract_name))
        bytecode = _bytecode(data.get("bytecode"))
        if not bytecode:
            raise InvalidArtifact(f"Artifact for {contract_name} has no creation bytecode")
        return Artifact(name=contract_name, bytecode=bytecode, abi=list(data.get("abi", [])))


def _get_abi(contract_type) -> List[dict]:
    return [entry.model_dump(mode="json", by_alias=True) for entry in contract_type.abi]


class ProjectArtifactStore:
    """Reads artifacts from the contracts compiled by the local ape project."""

    def read_artifact(self, contract_name: str) -> Artifact:
        try:
            contract_type = get_contract_container(contract_name).contract_type
        except ValueError as e:
            raise ArtifactNotFound(str(e)) from e
        deployment_bytecode = contract_type.deployment_bytecode
        bytecode = deployment_bytecode.bytecode if deployment_bytecode else None
        if not bytecode:
            raise InvalidArtifact(f"Artifact for {contract_name} has no creation bytecode")
        return Artifact(
            name=contract_name, bytecode=_bytecode(bytecode), abi=_get_abi(contract_type)
        )
