from types import SimpleNamespace

import pytest
from ape_etherscan.utils import API_KEY_ENV_KEY_MAP

from memeverse_deployment import utils
from memeverse_deployment.config import MissingEnvironmentValue


@pytest.fixture
def sepolia(monkeypatch):
    network = SimpleNamespace(name="sepolia", ecosystem=SimpleNamespace(name="ethereum"))
    provider = SimpleNamespace(network=network)
    monkeypatch.setattr(utils, "networks", SimpleNamespace(provider=provider))
    return network


def test_missing_explorer_api_key(sepolia, monkeypatch):
    envvar = API_KEY_ENV_KEY_MAP.get("ethereum")
    if not envvar:
        pytest.skip("ape-etherscan has no API key variable for ethereum")
    monkeypatch.delenv(envvar, raising=False)
    with pytest.raises(MissingEnvironmentValue) as error:
        utils.check_etherscan_plugin()
    assert error.value.names == [envvar]

    monkeypatch.setenv(envvar, "key")
    utils.check_etherscan_plugin()


def test_local_network_needs_no_explorer(sepolia, monkeypatch):
    sepolia.name = "local"
    for envvar in API_KEY_ENV_KEY_MAP.values():
        monkeypatch.delenv(envvar, raising=False)
    utils.check_etherscan_plugin()
