"""
sipwatch CLI - main entry point.
"""
import logging
import sys

import click

from .listen import listen, interfaces

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(verbose: bool = False):
    """Configures basic logging on stderr."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose: bool):
    """sipwatch - live SIP message capture and TCP reassembly."""
    setup_logging(verbose)


cli.add_command(listen)
cli.add_command(interfaces)

if __name__ == "__main__":
    cli()
