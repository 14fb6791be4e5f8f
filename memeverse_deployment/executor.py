from typing import Optional

from ape.utils import ZERO_ADDRESS
from eth_utils import is_address, to_checksum_address, to_hex

from memeverse_deployment.create3 import predict_create3_address
from memeverse_deployment.params import DeploymentSpec
from memeverse_deployment.registry import DeploymentRecord


class DeploymentFailed(Exception):
    """The factory did not deploy the contract; nothing was recorded."""

    def __init__(
        self, message: str, network: str, contract_name: str, address: Optional[str] = None
    ):
        self.network = network
        self.contract_name = contract_name
        self.address = address
        context = f"network={network}, contract={contract_name}"
        if address:
            context += f", address={address}"
        super().__init__(f"{message} ({context})")


class DeploymentExecutor:
    """
    Deploys a contract through a deterministic deployment factory and records it.

    There is no retry here: a deployment spends funds and lands at a fixed
    address, so a failure is surfaced to the operator instead.
    """

    def __init__(
        self,
        factory,
        artifacts,
        registry,
        deployer_address: str,
        chain_id: int,
        network: str,
        transactor=None,
    ):
        self.factory = factory
        self.artifacts = artifacts
        self.registry = registry
        self.deployer_address = to_checksum_address(deployer_address)
        self.chain_id = chain_id
        self.network = network
        self.transactor = transactor

    def _fail(self, message: str, spec: DeploymentSpec, address: Optional[str] = None):
        return DeploymentFailed(
            message, network=self.network, contract_name=spec.contract_name, address=address
        )

    def execute(self, spec: DeploymentSpec) -> DeploymentRecord:
        artifact = self.artifacts.read_artifact(spec.contract_name)
        spec.check_abi(artifact.abi)
        init_code = spec.init_code(artifact.bytecode)
        salt = spec.salt

        predicted = predict_create3_address(self.factory.address, self.deployer_address, salt)
        print(
            f"\nDeploying {spec.contract_name} on {self.network}",
            f"\tsalt: {spec.salt_seed.label} v{spec.salt_seed.version} ({to_hex(salt)})",
            f"\tfactory: {self.factory.address}",
            f"\tpredicted address: {predicted}",
            sep="\n",
        )
        if self.transactor is not None:
            self.transactor.confirm_deployment(spec)

        try:
            self.factory.deploy(salt, init_code)
        except Exception as e:
            raise self._fail(f"Factory deployment reverted: {e}", spec) from e

        try:
            address = self.factory.get_deployed(self.deployer_address, salt)
        except Exception as e:
            raise self._fail(f"Could not resolve deployed address: {e}", spec) from e
        if not address or not is_address(address) or address == ZERO_ADDRESS:
            raise self._fail("Factory returned no address", spec)

        address = to_checksum_address(address)
        if address != predicted:
            print(f"(!) Factory address {address} differs from predicted address {predicted}")
        print(
            f"Deployed contract: {spec.contract_name}, network: {self.network}, address: {address}"
        )

        record = DeploymentRecord(
            chain_id=self.chain_id,
            name=spec.contract_name,
            address=address,
            abi=list(artifact.abi),
            deployer=self.deployer_address,
            salt=to_hex(salt),
        )
        self.registry.save(record)
        return record
