from pathlib import Path

import memeverse_deployment

#
# Filesystem
#

DEPLOYMENT_DIR = Path(memeverse_deployment.__file__).parent
CONSTRUCTOR_PARAMS_DIR = DEPLOYMENT_DIR / "constructor_params"
ROUTES_DIR = DEPLOYMENT_DIR / "layerzero"
ARTIFACTS_DIR = DEPLOYMENT_DIR / "artifacts"

#
# Domains
#

TESTNET = "testnet"
MAINNET = "mainnet"

SUPPORTED_DOMAINS = [TESTNET, MAINNET]

LOCAL_NETWORK_NAME = "local"

#
# Environment
#

DOTENV_FILENAME = ".env"

# address of the deterministic deployment factory
FACTORY_ENVVAR = "OUTRUN_DEPLOYER"

#
# Verification
#

DEFAULT_MAX_VERIFICATION_ATTEMPTS = 10

# lower-cased fragments of explorer errors meaning the source is already published
ALREADY_VERIFIED_MESSAGES = (
    "already verified",
    "contract source code already verified",
    "smart-contract already verified",
)

#
# Factory
#

FACTORY_ABI = [
    {
        "type": "function",
        "name": "deploy",
        "stateMutability": "payable",
        "inputs": [
            {"name": "salt", "type": "bytes32", "internalType": "bytes32"},
            {"name": "creationCode", "type": "bytes", "internalType": "bytes"},
        ],
        "outputs": [{"name": "deployed", "type": "address", "internalType": "address"}],
    },
    {
        "type": "function",
        "name": "getDeployed",
        "stateMutability": "view",
        "inputs": [
            {"name": "deployer", "type": "address", "internalType": "address"},
            {"name": "salt", "type": "bytes32", "internalType": "bytes32"},
        ],
        "outputs": [{"name": "", "type": "address", "internalType": "address"}],
    },
]

# keccak256 of the minimal CREATE3 proxy creation code
CREATE3_PROXY_BYTECODE_HASH = bytes.fromhex(
    "21c35dbe1b344a2488cf3321d6ce542f8e9f305544ff09e4993a62319a497c1f"
)

#
# LayerZero V2 endpoints
#

ENDPOINT_IDS = {
    # mainnets
    "ETHEREUM_V2_MAINNET": 30101,
    "BSC_V2_MAINNET": 30102,
    "ARBITRUM_V2_MAINNET": 30110,
    "BASE_V2_MAINNET": 30184,
    "BLAST_V2_MAINNET": 30243,
    # testnets
    "BSC_V2_TESTNET": 40102,
    "BLAST_V2_TESTNET": 40243,
    "BASESEP_V2_TESTNET": 40245,
}

# endpoint id -> EVM chain id
ENDPOINT_CHAIN_IDS = {
    30101: 1,
    30102: 56,
    30110: 42161,
    30184: 8453,
    30243: 81457,
    40102: 97,
    40243: 168587773,
    40245: 84532,
}

# special params-file variable resolving to the route table endpoint list
ENDPOINTS_VARIABLE = "endpoints"
