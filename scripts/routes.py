import sys
from pathlib import Path

import click

from memeverse_deployment.constants import ROUTES_DIR
from memeverse_deployment.options import domain_option
from memeverse_deployment.routes import export_route_table, load_route_table, validate
from memeverse_deployment.utils import routes_filepath


@click.command()
@domain_option
@click.option(
    "--output",
    "-o",
    help="Write the validated route table as JSON for the LayerZero configuration tooling",
    type=click.Path(dir_okay=False, path_type=Path),
    required=False,
)
def cli(domain, output):
    """Validate (and optionally export) the cross-chain route table of a domain."""
    filepath = routes_filepath(ROUTES_DIR, domain)
    table = load_route_table(filepath)

    print(f"Route table {filepath}")
    for connection in table.connections:
        send_uln = connection.config.send_config.uln_config
        receive_uln = connection.config.receive_config.uln_config
        print(
            f"\t{connection}: send confirmations={send_uln.confirmations}, "
            f"receive confirmations={receive_uln.confirmations}"
        )

    result = validate(table)
    if not result.ok:
        print("(!) Invalid route table:")
        for error in result.errors:
            print(f"\t{error}")
        sys.exit(1)
    print(
        f"(i) {len(table.connections)} connection(s) between "
        f"{len(table.contracts)} contract(s) OK"
    )

    if output:
        export_route_table(table, output)


if __name__ == "__main__":
    cli()
