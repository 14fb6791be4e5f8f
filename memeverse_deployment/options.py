from pathlib import Path

import click

from memeverse_deployment.constants import SUPPORTED_DOMAINS
from memeverse_deployment.types import ChecksumAddress, MinInt

domain_option = click.option(
    "--domain",
    "-d",
    help="Deployment domain; selects params files and route table",
    type=click.Choice(SUPPORTED_DOMAINS),
    required=True,
)

tag_option = click.option(
    "--tag",
    "-t",
    help="Deployment task, i.e. the name of a params file (e.g. MemeverseRegistrationCenter)",
    type=click.STRING,
    required=True,
)

max_attempts_option = click.option(
    "--max-attempts",
    "-m",
    help="Maximum number of source verification attempts (overrides the params file)",
    type=MinInt(1),
    required=False,
)

verify_option = click.option(
    "--verify/--no-verify",
    help="Publish contract sources to the block explorer after deployment",
    default=True,
)

autosign_option = click.option(
    "--autosign",
    help="Sign transactions automatically, without confirmation prompts",
    is_flag=True,
    default=False,
)

artifacts_dir_option = click.option(
    "--artifacts-dir",
    help="Read compiled artifacts from this build directory instead of the ape project",
    type=click.Path(file_okay=False, exists=True, path_type=Path),
    required=False,
)

registry_filepath_option = click.option(
    "--registry-filepath",
    "-f",
    help="Deployment registry; defaults to the domain registry",
    type=click.Path(dir_okay=False, path_type=Path),
    required=False,
)

timeout_option = click.option(
    "--verification-timeout",
    help="Seconds before a single verification attempt is abandoned",
    type=click.FloatRange(min=0, min_open=True),
    default=120.0,
    show_default=True,
)

factory_option = click.option(
    "--factory",
    help="Deterministic deployment factory address (overrides OUTRUN_DEPLOYER)",
    type=ChecksumAddress(),
    required=False,
)
