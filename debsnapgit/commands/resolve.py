"""
Resolve command for debsnapgit.

Shows which published snapshot a point in time maps to.
"""

import json

import click

from ..config import load_config, configure_logging, WalkConfig
from ..domain.instant import format_instant, parse_timespec
from ..infra.snapshot_client import SnapshotClient


@click.command('resolve')
@click.argument('timespec')
@click.option('--base-url', help='Snapshot archive base URL')
@click.option('-v', '--verbose', is_flag=True, help='Debug logging')
def resolve_handler(timespec, base_url, verbose):
    """
    Resolve TIMESPEC to the nearest published snapshot.

    TIMESPEC is a snapshot instant (20210801T023234Z), an ISO date or
    datetime (2021-08-01, 2021-08-01T02:00:00) or a relative time (30d).

    \b
    Examples:
        debsnapgit resolve 2021-08-01
        debsnapgit resolve 6h
    """
    config = load_config()
    configure_logging(config, verbose=verbose)
    walk_config = WalkConfig.from_config(config)

    try:
        requested = parse_timespec(timespec)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='TIMESPEC') from e

    with SnapshotClient(
        base_url=base_url or walk_config.base_url,
        archive=walk_config.archive_name,
        timeout=walk_config.http_timeout,
    ) as client:
        resolved = client.resolve(requested)

    click.echo(json.dumps({
        'requested': format_instant(requested),
        'snapshot': format_instant(resolved),
        'url': client.snapshot_url(resolved),
    }))
