#!/usr/bin/python3

import os
import sys

import click
from ape import Contract, networks
from ape.cli import ConnectedProviderCommand, network_option

from memeverse_deployment.artifacts import ArtifactStore, ProjectArtifactStore
from memeverse_deployment.config import EnvironmentConfig
from memeverse_deployment.configure import PostDeployConfigurator
from memeverse_deployment.constants import CONSTRUCTOR_PARAMS_DIR, FACTORY_ENVVAR, ROUTES_DIR
from memeverse_deployment.executor import DeploymentExecutor
from memeverse_deployment.factory import DeterministicFactory
from memeverse_deployment.options import (
    artifacts_dir_option,
    autosign_option,
    domain_option,
    factory_option,
    max_attempts_option,
    registry_filepath_option,
    tag_option,
    timeout_option,
    verify_option,
)
from memeverse_deployment.params import DeploymentSpec, Transactor, required_environment
from memeverse_deployment.registry import DeploymentRegistry
from memeverse_deployment.routes import load_route_table, validate_or_raise
from memeverse_deployment.task import DeploymentTask, run_task
from memeverse_deployment.utils import (
    _load_yaml,
    check_plugins,
    is_local_network,
    network_description,
    params_filepath,
    registry_filepath_from_domain,
    routes_filepath,
)
from memeverse_deployment.verification import ExplorerVerifier, VerificationRetrier


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@domain_option
@tag_option
@max_attempts_option
@verify_option
@autosign_option
@artifacts_dir_option
@registry_filepath_option
@timeout_option
@factory_option
def cli(
    network,
    domain,
    tag,
    max_attempts,
    verify,
    autosign,
    artifacts_dir,
    registry_filepath,
    verification_timeout,
    factory,
):
    """
    Deterministically deploy one contract through the deployment factory,
    verify its sources and apply its post-deployment configuration.

    ape run deploy --network bsc:testnet:node --domain testnet --tag MemeverseRegistrationCenter
    """

    def prepare() -> DeploymentTask:
        environ = dict(os.environ)
        if factory:
            environ[FACTORY_ENVVAR] = factory
        environment = EnvironmentConfig.load(environ=environ)

        config = _load_yaml(params_filepath(CONSTRUCTOR_PARAMS_DIR, domain, tag))
        environment.require(*required_environment(config))

        routes = None
        routes_path = routes_filepath(ROUTES_DIR, domain)
        if routes_path.exists():
            routes = validate_or_raise(load_route_table(routes_path))

        check_plugins(verify=verify)
        transactor = Transactor(autosign=autosign)
        deployer_address = transactor.get_account().address

        spec = DeploymentSpec.from_config(
            config, environment, deployer_address=deployer_address, routes=routes
        )
        if max_attempts:
            spec = spec._replace(max_verification_attempts=max_attempts)
        chain_id = networks.provider.network.chain_id
        spec.check_chain_id(chain_id, local=is_local_network())

        registry_filepath_ = registry_filepath or registry_filepath_from_domain(domain)
        artifacts = ArtifactStore(artifacts_dir) if artifacts_dir else ProjectArtifactStore()
        print(
            f"Account: {deployer_address}",
            f"Task: {tag}",
            f"Registry: {registry_filepath_}",
            f"Factory: {environment.factory}",
            f"Verify: {verify}",
            f"Network: {network_description()}",
            f"Chain ID: {chain_id}",
            sep="\n",
        )

        executor = DeploymentExecutor(
            factory=DeterministicFactory(environment.factory, transactor),
            artifacts=artifacts,
            registry=DeploymentRegistry(registry_filepath_),
            deployer_address=deployer_address,
            chain_id=chain_id,
            network=network_description(),
            transactor=transactor,
        )
        retrier = VerificationRetrier(ExplorerVerifier(), timeout=verification_timeout)
        return DeploymentTask(
            spec=spec,
            executor=executor,
            retrier=retrier,
            configurator=PostDeployConfigurator(transactor),
            contract_at=lambda record: Contract(record.address, abi=record.abi),
            verify=verify,
        )

    sys.exit(run_task(prepare))


if __name__ == "__main__":
    cli()
