import json

import pytest

from memeverse_deployment.artifacts import ArtifactNotFound, ArtifactStore, InvalidArtifact
from tests.conftest import FOO_ABI, FOO_BYTECODE


def _write(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


def test_hardhat_artifact(tmp_path):
    _write(
        tmp_path / "contracts" / "Foo.sol" / "Foo.json",
        {"contractName": "Foo", "abi": FOO_ABI, "bytecode": "0x" + FOO_BYTECODE.hex()},
    )
    _write(tmp_path / "contracts" / "Foo.sol" / "Foo.dbg.json", {"buildInfo": "x"})

    artifact = ArtifactStore(tmp_path).read_artifact("Foo")
    assert artifact.name == "Foo"
    assert artifact.bytecode == FOO_BYTECODE
    assert artifact.abi == FOO_ABI


def test_foundry_artifact(tmp_path):
    _write(
        tmp_path / "out" / "Foo.sol" / "Foo.json",
        {"abi": FOO_ABI, "bytecode": {"object": FOO_BYTECODE.hex()}},
    )
    assert ArtifactStore(tmp_path).read_artifact("Foo").bytecode == FOO_BYTECODE


def test_missing_ambiguous_and_empty_artifacts(tmp_path):
    store = ArtifactStore(tmp_path)
    with pytest.raises(ArtifactNotFound):
        store.read_artifact("Foo")

    _write(tmp_path / "a" / "Foo.json", {"abi": [], "bytecode": "0x"})
    with pytest.raises(InvalidArtifact, match="no creation bytecode"):
        store.read_artifact("Foo")

    _write(tmp_path / "b" / "Foo.json", {"abi": [], "bytecode": "0x00"})
    with pytest.raises(InvalidArtifact, match="ambiguous"):
        store.read_artifact("Foo")
