import pytest
from eth_utils import to_checksum_address

from memeverse_deployment.artifacts import Artifact, ArtifactNotFound
from memeverse_deployment.config import EnvironmentConfig

# Common constants
DEPLOYER = to_checksum_address("0x" + "aa" * 20)
FACTORY = to_checksum_address("0x" + "fa" * 20)
DEPLOYED = to_checksum_address("0x" + "beef" * 10)
OWNER = to_checksum_address("0x" + "01" * 20)
ENDPOINT = to_checksum_address("0x" + "1a" * 20)

FOO_BYTECODE = bytes.fromhex("6080604052348015600f57600080fd5b50")
FOO_ABI = [
    {
        "type": "constructor",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "_owner", "type": "address", "internalType": "address"},
            {"name": "_gasLimit", "type": "uint128", "internalType": "uint128"},
        ],
    },
    {
        "type": "function",
        "name": "setLockupDaysRange",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "minLockupDays", "type": "uint128", "internalType": "uint128"},
            {"name": "maxLockupDays", "type": "uint128", "internalType": "uint128"},
        ],
        "outputs": [],
    },
]


# Test doubles
class FakeFactory:
    def __init__(self, deployed=DEPLOYED, address=FACTORY, deploy_error=None):
        self.address = address
        self.deployed = deployed
        self.deploy_error = deploy_error
        self.deploy_calls = []
        self.get_deployed_calls = []

    def deploy(self, salt, init_code):
        self.deploy_calls.append((salt, init_code))
        if self.deploy_error:
            raise self.deploy_error
        return "receipt"

    def get_deployed(self, deployer, salt):
        self.get_deployed_calls.append((deployer, salt))
        return self.deployed


class FakeArtifacts:
    def __init__(self, artifacts=None):
        self.artifacts = artifacts or {"Foo": Artifact("Foo", FOO_BYTECODE, FOO_ABI)}

    def read_artifact(self, contract_name):
        try:
            return self.artifacts[contract_name]
        except KeyError:
            raise ArtifactNotFound(f"No artifact for {contract_name}")


class FakeVerifier:
    """Fails with the queued errors in order, then succeeds."""

    def __init__(self, errors=()):
        self.errors = list(errors)
        self.calls = []

    def verify_source(self, address, constructor_args):
        self.calls.append((address, constructor_args))
        if self.errors:
            raise self.errors.pop(0)


class AlwaysFailingVerifier(FakeVerifier):
    def verify_source(self, address, constructor_args):
        self.calls.append((address, constructor_args))
        raise RuntimeError("Unable to locate ContractCode")


class FakeTransactor:
    def __init__(self):
        self.transactions = []

    def transact(self, method, *args):
        self.transactions.append((method.__name__, args))
        return method(*args)


# Fixtures
@pytest.fixture
def environment():
    return EnvironmentConfig(
        factory=FACTORY,
        values={
            "OUTRUN_DEPLOYER": FACTORY,
            "OWNER": OWNER,
            "BSC_TESTNET_ENDPOINT": ENDPOINT,
            "MEMEVERSE_REGISTRAR": DEPLOYED,
            "BLAST_GOVERNOR": OWNER,
            "BLAST_SEPOLIA_ENDPOINT": ENDPOINT,
            "MEMECOIN_DEPLOYER": OWNER,
            "LIQUID_PROOF_DEPLOYER": OWNER,
            "BLAST_SEPOLIA_EID": "40243",
        },
    )


@pytest.fixture
def factory():
    return FakeFactory()


@pytest.fixture
def artifacts():
    return FakeArtifacts()


@pytest.fixture
def registry_filepath(tmp_path):
    return tmp_path / "artifacts" / "testnet.json"
