import sys
from pathlib import Path

import click
from ape import networks
from ape.cli import ConnectedProviderCommand, network_option

from memeverse_deployment.constants import SUPPORTED_DOMAINS
from memeverse_deployment.options import max_attempts_option, timeout_option
from memeverse_deployment.registry import DeploymentRegistry
from memeverse_deployment.utils import (
    check_etherscan_plugin,
    network_description,
    registry_filepath_from_domain,
)
from memeverse_deployment.verification import (
    ExplorerVerifier,
    VerificationOutcome,
    VerificationRetrier,
)


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@click.option(
    "--contract-name",
    "-c",
    "contract_names",
    help="Contract to verify",
    type=click.STRING,
    required=True,
    multiple=True,
)
@click.option(
    "--domain",
    "-d",
    help="Deployment domain; used for obtaining the deployment registry",
    type=click.Choice(SUPPORTED_DOMAINS),
    required=False,
)
@click.option(
    "--registry-filepath",
    "-f",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    help="Registry filepath if the contract is not part of a domain registry",
    required=False,
)
@max_attempts_option
@timeout_option
def cli(network, domain, contract_names, registry_filepath, max_attempts, verification_timeout):
    """Verify deployed contracts, retrying until the explorer accepts them."""
    if not (bool(registry_filepath) ^ bool(domain)):
        raise click.BadOptionUsage(
            option_name="--domain",
            message=(
                f"Provide either 'domain' or 'registry_filepath'; "
                f"got {domain}, {registry_filepath}"
            ),
        )

    check_etherscan_plugin()
    registry = DeploymentRegistry(registry_filepath or registry_filepath_from_domain(domain))
    chain_id = networks.provider.network.chain_id
    records = registry.records(chain_id)

    retrier = VerificationRetrier(ExplorerVerifier(), timeout=verification_timeout)
    exhausted = list()
    for contract_name in contract_names:
        try:
            record = records[contract_name]
        except KeyError:
            raise click.BadParameter(
                f"Contract '{contract_name}' not found in registry, '{registry.filepath}', "
                f"for chain {chain_id}"
            )
        outcome = retrier.verify(
            contract_name=record.name,
            address=record.address,
            constructor_args=(),
            network=network_description(),
            max_attempts=max_attempts,
        )
        if outcome is VerificationOutcome.EXHAUSTED:
            exhausted.append(contract_name)

    if exhausted:
        print(f"(!) Not verified: {', '.join(exhausted)}")
    sys.exit(0)


if __name__ == "__main__":
    cli()
