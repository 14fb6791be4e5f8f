"""
Deterministic address derivation.

Addresses computed here never depend on the chain, only on the deploying
address, the salt and (for CREATE2) the creation code. Holding the deployer
and the salt constant lands a contract at the same address on every chain.
"""

from eth_abi.packed import encode_packed
from eth_typing import ChecksumAddress
from eth_utils import keccak, to_bytes, to_canonical_address, to_checksum_address

from memeverse_deployment.constants import CREATE3_PROXY_BYTECODE_HASH

SALT_SIZE = 32


def make_salt(label: str, version: int) -> bytes:
    """
    Returns keccak256(abi.encodePacked(label, version)).

    Bumping the version yields a new salt and therefore a new target
    address; it is a re-deployment, not an upgrade.
    """
    if version < 0:
        raise ValueError(f"Salt version must be non-negative, got {version}")
    packed = encode_packed(["string", "uint256"], [label, version])
    return keccak(packed)


def _to_salt(salt) -> bytes:
    if isinstance(salt, str):
        salt = to_bytes(hexstr=salt)
    if len(salt) != SALT_SIZE:
        raise ValueError(f"Salt must be {SALT_SIZE} bytes, got {len(salt)}")
    return bytes(salt)


def _create2(deployer: str, salt: bytes, init_code_hash: bytes) -> ChecksumAddress:
    preimage = b"\xff" + to_canonical_address(deployer) + salt + init_code_hash
    return to_checksum_address(keccak(preimage)[12:])


def derive(deployer: str, salt, init_code) -> ChecksumAddress:
    """CREATE2 address of `init_code` deployed by `deployer` with `salt`."""
    if isinstance(init_code, str):
        init_code = to_bytes(hexstr=init_code)
    return _create2(deployer, _to_salt(salt), keccak(init_code))


def predict_create3_address(factory: str, deployer: str, salt) -> ChecksumAddress:
    """
    Address a CREATE3 factory hands out for (deployer, salt).

    The factory namespaces the salt by caller, deploys a minimal proxy with
    CREATE2 and the proxy deploys the contract with CREATE at nonce 1.
    """
    guarded_salt = keccak(to_canonical_address(deployer) + _to_salt(salt))
    proxy = to_canonical_address(_create2(factory, guarded_salt, CREATE3_PROXY_BYTECODE_HASH))
    # rlp([proxy, 1])
    return to_checksum_address(keccak(b"\xd6\x94" + proxy + b"\x01")[12:])
