import json

import pytest
from eth_utils import to_checksum_address

from memeverse_deployment.constants import ROUTES_DIR
from memeverse_deployment.routes import (
    Connection,
    EndpointRef,
    InvalidRouteTable,
    RouteTable,
    endpoint_ids,
    export_route_table,
    load_route_table,
    route_table_from_dict,
    validate,
    validate_or_raise,
)

DVN = "0x0eE552262f7B562eFcED6DD4A7e2878AB897d405"
OTHER_DVN = "0xe1a12515F9AB2764b887bF60B923Ca494EBbB2d6"
LIBRARY = "0x55f16c442907e86D764AFdc2a07C2de3BdAc8BB7"
EXECUTOR = "0x31894b190a8bAbd9A067Ce59fde0BfCFD2B18470"

CENTER = EndpointRef(eid=40102, contract_name="MemeverseRegistrationCenter")
REGISTRAR = EndpointRef(eid=40245, contract_name="MemeverseRegistrar")


def _config(send_confirmations=5, receive_confirmations=1, **uln_overrides):
    def uln(confirmations):
        data = {
            "confirmations": confirmations,
            "requiredDVNs": [DVN],
            "optionalDVNs": [],
            "optionalDVNThreshold": 0,
        }
        data.update(uln_overrides)
        return data

    return {
        "sendLibrary": LIBRARY,
        "receiveLibraryConfig": {"receiveLibrary": LIBRARY, "gracePeriod": 0},
        "sendConfig": {
            "executorConfig": {"maxMessageSize": 10000, "executor": EXECUTOR},
            "ulnConfig": uln(send_confirmations),
        },
        "receiveConfig": {"ulnConfig": uln(receive_confirmations)},
    }


def _two_endpoint_table(**config_overrides):
    return route_table_from_dict(
        {
            "contracts": {
                "center": {"eid": "BSC_V2_TESTNET", "contractName": CENTER.contract_name},
                "registrar": {"eid": 40245, "contractName": REGISTRAR.contract_name},
            },
            "connections": [
                {"from": "center", "to": "registrar", "config": _config(**config_overrides)},
                {"from": "registrar", "to": "center", "config": _config(1, 5)},
            ],
        }
    )


@pytest.fixture(scope="module")
def testnet_routes():
    return load_route_table(ROUTES_DIR / "testnet.yml")


def test_testnet_route_table_is_valid(testnet_routes):
    result = validate(testnet_routes)
    assert result.ok, result.errors
    assert len(testnet_routes.contracts) == 3
    assert len(testnet_routes.connections) == 4


def test_asymmetric_confirmations_are_allowed(testnet_routes):
    outbound = testnet_routes.connections[0]
    assert outbound.source.eid == 40102
    assert outbound.config.send_config.uln_config.confirmations == 5
    assert outbound.config.receive_config.uln_config.confirmations == 1

    table = _two_endpoint_table()
    assert table.contracts == (CENTER, REGISTRAR)
    assert validate(table).ok


def test_endpoint_ids(testnet_routes):
    assert endpoint_ids(testnet_routes, "MemeverseRegistrationCenter") == [
        (84532, 40245),
        (168587773, 40243),
    ]
    assert endpoint_ids(testnet_routes, "MemeverseRegistrarOnBlast") == [(97, 40102)]
    assert endpoint_ids(testnet_routes, "Unknown") == []


def test_undeclared_endpoint():
    table = _two_endpoint_table()
    stranger = EndpointRef(eid=40243, contract_name="MemeverseRegistrarOnBlast")
    edge = Connection(source=CENTER, target=stranger, config=table.connections[0].config)
    invalid = table._replace(connections=table.connections + (edge,))

    result = validate(invalid)
    assert not result
    assert any("is not a declared contract" in error for error in result.errors)


def test_undeclared_alias_in_declarative_form():
    with pytest.raises(InvalidRouteTable, match="undeclared contract alias"):
        route_table_from_dict(
            {
                "contracts": {"center": {"eid": 40102, "contractName": "Center"}},
                "connections": [{"from": "center", "to": "nowhere", "config": _config()}],
            }
        )


def test_unknown_symbolic_endpoint_id():
    with pytest.raises(InvalidRouteTable, match="Unknown endpoint id"):
        route_table_from_dict(
            {"contracts": {"center": {"eid": "MOON_V2_TESTNET", "contractName": "Center"}}}
        )


@pytest.mark.parametrize(
    "overrides, expected_error",
    [
        ({"optionalDVNs": [OTHER_DVN], "optionalDVNThreshold": 2}, "exceeds the number"),
        ({"requiredDVNs": []}, "requiredDVNs must not be empty"),
        ({"requiredDVNs": [DVN, DVN.lower()]}, "duplicated requiredDVNs"),
        ({"requiredDVNs": ["0x1234"]}, "is not a valid address"),
        ({"optionalDVNThreshold": -1}, "must not be negative"),
    ],
)
def test_invalid_uln_config(overrides, expected_error):
    result = validate(_two_endpoint_table(**overrides))
    assert not result.ok
    assert any(expected_error in error for error in result.errors), result.errors


def test_zero_confirmations():
    result = validate(_two_endpoint_table(send_confirmations=0))
    assert result.errors == (
        "MemeverseRegistrationCenter@40102 -> MemeverseRegistrar@40245 (send): "
        "confirmations must be >= 1, got 0",
    )


def test_duplicate_and_self_connections():
    table = _two_endpoint_table()
    first = table.connections[0]
    loop = first._replace(target=first.source)
    invalid = RouteTable(table.contracts, table.connections + (first, loop))

    errors = validate(invalid).errors
    assert any("duplicated connection (2 times)" in error for error in errors)
    assert any("connection to itself" in error for error in errors)


def test_validate_or_raise():
    table = _two_endpoint_table()
    assert validate_or_raise(table) is table
    with pytest.raises(InvalidRouteTable) as error:
        validate_or_raise(_two_endpoint_table(requiredDVNs=[]))
    assert len(error.value.result.errors) == 2  # send and receive


def test_export_route_table(tmp_path, testnet_routes):
    filepath = export_route_table(testnet_routes, tmp_path / "routes" / "testnet.json")
    with open(filepath) as file:
        exported = json.load(file)

    assert exported["contracts"][0] == {
        "contract": {"eid": 40102, "contractName": "MemeverseRegistrationCenter"}
    }
    first = exported["connections"][0]
    assert first["from"]["eid"] == 40102
    assert first["to"]["eid"] == 40245
    assert first["config"]["sendConfig"]["ulnConfig"]["confirmations"] == 5
    receive_uln = first["config"]["receiveConfig"]["ulnConfig"]
    assert receive_uln["requiredDVNs"] == [to_checksum_address(DVN)]


def test_invalid_table_is_not_exported(tmp_path):
    filepath = tmp_path / "routes.json"
    with pytest.raises(InvalidRouteTable):
        export_route_table(_two_endpoint_table(send_confirmations=0), filepath)
    assert not filepath.exists()


def test_endpoint_without_known_chain():
    table = _two_endpoint_table()
    unknown = EndpointRef(eid=49999, contract_name="Elsewhere")
    edge = Connection(source=CENTER, target=unknown, config=table.connections[0].config)
    with pytest.raises(InvalidRouteTable, match="No chain id known for endpoint id 49999"):
        endpoint_ids(table._replace(connections=(edge,)), CENTER.contract_name)
