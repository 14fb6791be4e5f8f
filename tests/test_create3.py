import pytest
from eth_utils import keccak, to_checksum_address

from memeverse_deployment.create3 import derive, make_salt, predict_create3_address
from tests.conftest import DEPLOYER, FACTORY

ZERO_SALT = b"\x00" * 32


@pytest.mark.parametrize(
    "deployer, init_code, expected",
    [
        # EIP-1014 examples 0 and 1
        (
            "0x0000000000000000000000000000000000000000",
            b"\x00",
            "0x4D1A2e2bB4F88F0250f26Ffff098B0b30B26BF38",
        ),
        (
            "0xdeadbeef00000000000000000000000000000000",
            b"\x00",
            "0xB928f69Bb1D91Cd65274e3c79d8986362984fDA3",
        ),
    ],
)
def test_create2_known_addresses(deployer, init_code, expected):
    assert derive(deployer, ZERO_SALT, init_code) == expected


def test_salt_is_hash_of_packed_label_and_version():
    expected = keccak(b"Foo" + (1).to_bytes(32, "big"))
    assert make_salt("Foo", 1) == expected
    assert len(make_salt("MemeverseRegistrar", 3)) == 32


def test_salt_changes_with_version():
    assert make_salt("Foo", 1) != make_salt("Foo", 2)
    assert make_salt("Foo", 1) != make_salt("Bar", 1)


def test_derivation_is_deterministic():
    init_code = bytes.fromhex("6080604052")
    salt = make_salt("Foo", 1)
    addresses = {derive(DEPLOYER, salt, init_code) for _ in range(5)}
    assert len(addresses) == 1

    hex_init_code = "0x6080604052"
    assert derive(DEPLOYER, "0x" + salt.hex(), hex_init_code) == addresses.pop()


def test_derived_address_changes_with_salt_version_and_code():
    init_code = bytes.fromhex("6080604052")
    v1 = derive(DEPLOYER, make_salt("Foo", 1), init_code)
    v2 = derive(DEPLOYER, make_salt("Foo", 2), init_code)
    other_code = derive(DEPLOYER, make_salt("Foo", 1), init_code + b"\x00")
    assert len({v1, v2, other_code}) == 3
    assert v1 == to_checksum_address(v1)


def test_create3_prediction_ignores_creation_code_but_not_deployer():
    salt = make_salt("MemeverseRegistrar", 3)
    predicted = predict_create3_address(FACTORY, DEPLOYER, salt)
    assert predicted == predict_create3_address(FACTORY, DEPLOYER, salt)

    other_deployer = to_checksum_address("0x" + "bb" * 20)
    assert predicted != predict_create3_address(FACTORY, other_deployer, salt)
    next_version = make_salt("MemeverseRegistrar", 4)
    assert predicted != predict_create3_address(FACTORY, DEPLOYER, next_version)


def test_invalid_salt_and_version():
    with pytest.raises(ValueError):
        derive(DEPLOYER, b"\x01" * 31, b"")
    with pytest.raises(ValueError):
        make_salt("Foo", -1)
