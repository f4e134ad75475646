"""
Generate key material for sealing session cookies.

.. code-block:: bash

   $ generate-session-keys --pairs 1
   SESSION_KEY_PAIRS=Vt3k...,q9Zr...

To rotate keys, put a new pair in front of the existing ones.
"""

import click

from .codec import generate_secret


@click.command()
@click.option('--pairs', default=1, show_default=True,
              help='Number of (auth, enc) key pairs to generate.')
@click.option('--nbytes', default=32, show_default=True,
              help='Random bytes per key.')
def generate_keys(pairs: int, nbytes: int) -> None:
    """Print a SESSION_KEY_PAIRS setting with fresh random keys."""
    if pairs < 1:
        raise click.BadParameter('At least one pair is required',
                                 param_hint='--pairs')
    keys = [generate_secret(nbytes) for _ in range(pairs * 2)]
    click.echo('SESSION_KEY_PAIRS=' + ','.join(keys))
