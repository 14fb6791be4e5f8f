import json
import os
from pathlib import Path

import yaml
from ape import networks, project
from ape.contracts import ContractContainer

from memeverse_deployment.config import MissingEnvironmentValue
from memeverse_deployment.constants import ARTIFACTS_DIR, LOCAL_NETWORK_NAME


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def _load_json(filepath: Path) -> dict:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


def is_local_network() -> bool:
    return networks.provider.network.name == LOCAL_NETWORK_NAME


def network_description() -> str:
    network = networks.provider.network
    return f"{network.ecosystem.name}:{network.name}"


def check_etherscan_plugin() -> None:
    """
    Checks that the ape-etherscan plugin is installed and that
    the appropriate API key environment variable is set.
    """
    if is_local_network():
        # unnecessary for local deployment
        return
    try:
        from ape_etherscan.utils import API_KEY_ENV_KEY_MAP
    except ImportError:
        raise ImportError("Please install the ape-etherscan plugin to verify contracts.")
    ecosystem_name = networks.provider.network.ecosystem.name
    explorer_envvar = API_KEY_ENV_KEY_MAP.get(ecosystem_name)
    if explorer_envvar and not os.environ.get(explorer_envvar):
        raise MissingEnvironmentValue([explorer_envvar])


def check_plugins(verify: bool) -> None:
    print("Checking plugins...")
    if verify:
        check_etherscan_plugin()


def _get_dependency_contract_container(contract: str) -> ContractContainer:
    for dependency_name, dependency_versions in project.dependencies.items():
        if len(dependency_versions) > 1:
            raise ValueError(f"Ambiguous {dependency_name} dependency for {contract}")
        try:
            dependency_api = list(dependency_versions.values())[0]
            return getattr(dependency_api, contract)
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


def params_filepath(params_dir: Path, domain: str, tag: str) -> Path:
    filepath = params_dir / domain / f"{tag}.yml"
    if not filepath.exists():
        raise FileNotFoundError(f"No deployment task '{tag}' for domain '{domain}' ({filepath})")
    return filepath


def routes_filepath(routes_dir: Path, domain: str) -> Path:
    return routes_dir / f"{domain}.yml"


def registry_filepath_from_domain(domain: str) -> Path:
    return ARTIFACTS_DIR / f"{domain}.json"
