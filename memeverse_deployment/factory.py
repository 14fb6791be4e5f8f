from ape import Contract
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from memeverse_deployment.constants import FACTORY_ABI


class DeterministicFactory:
    """
    A deployed CREATE3-style factory: `deploy(salt, creationCode)` and
    `getDeployed(deployer, salt)`. The resulting address depends only on the
    calling deployer and the salt.
    """

    def __init__(self, address: str, transactor):
        self.address = to_checksum_address(address)
        self.transactor = transactor
        self.contract = Contract(self.address, abi=FACTORY_ABI)

    def deploy(self, salt: bytes, init_code: bytes):
        return self.transactor.transact(self.contract.deploy, salt, init_code, value=0)

    def get_deployed(self, deployer: str, salt: bytes) -> ChecksumAddress:
        return to_checksum_address(self.contract.getDeployed(deployer, salt))
