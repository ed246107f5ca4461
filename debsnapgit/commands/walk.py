"""
Walk command for debsnapgit.

Fetches every snapshot between (now - lookback) and now and commits each
into the archive repository.
"""

import json
from pathlib import Path
from typing import Optional

import click

from ..config import load_config, configure_logging, WalkConfig
from ..domain.package import Selector
from ..domain.instant import parse_duration
from ..exit_codes import ConfigError
from ..infra.git_client import GitClient, GitArchiveStore
from ..infra.snapshot_client import SnapshotClient
from ..services.materializer import ArchiveMaterializer
from ..services.walker import SnapshotWalker, WalkerSettings


def apply_overrides(walk_config: WalkConfig, **overrides) -> WalkConfig:
    """Apply command-line overrides on top of the configured settings."""
    selector = walk_config.selector
    selector = Selector(
        distribution=overrides.get('dist') or selector.distribution,
        component=overrides.get('component') or selector.component,
        architecture=overrides.get('arch') or selector.architecture,
    )
    walk_config.selector = selector

    try:
        if overrides.get('step'):
            walk_config.step = parse_duration(overrides['step'])
        if overrides.get('lookback'):
            walk_config.lookback = parse_duration(overrides['lookback'])
    except ValueError as e:
        raise ConfigError(str(e)) from e

    if overrides.get('repo'):
        walk_config.repository_path = Path(overrides['repo']).expanduser()
    if overrides.get('base_url'):
        walk_config.base_url = overrides['base_url']

    return walk_config


def build_walker(walk_config: WalkConfig, client: SnapshotClient,
                 max_snapshots: Optional[int] = None) -> SnapshotWalker:
    """Wire a SnapshotWalker from settings and an open client."""
    git = GitClient(
        timeout=walk_config.git_timeout,
        user_name=walk_config.git_user_name,
        user_email=walk_config.git_user_email,
    )
    store = GitArchiveStore(walk_config.repository_path, git=git)
    return SnapshotWalker(
        selector=walk_config.selector,
        resolver=client,
        fetcher=client,
        materializer=ArchiveMaterializer(store),
        settings=WalkerSettings(
            step=walk_config.step,
            lookback=walk_config.lookback,
            max_snapshots=max_snapshots,
        ),
    )


@click.command('walk')
@click.option('--dist', help='Distribution (e.g. sid, bookworm)')
@click.option('--component', help='Archive component (e.g. main)')
@click.option('--arch', help='Architecture (e.g. amd64)')
@click.option('--repo', type=click.Path(file_okay=False), help='Archive git repository path')
@click.option('--step', help='Step between snapshots (e.g. 6h)')
@click.option('--lookback', help='How far back to start (e.g. 30d)')
@click.option('--max-snapshots', type=click.IntRange(min=1), default=None,
              help='Stop after committing this many snapshots')
@click.option('--base-url', help='Snapshot archive base URL')
@click.option('--pretty', is_flag=True, help='Display results as a table')
@click.option('-v', '--verbose', is_flag=True, help='Debug logging')
def walk_handler(dist, component, arch, repo, step, lookback, max_snapshots,
                 base_url, pretty, verbose):
    """
    Archive snapshots of a binary package index into git.

    Resolves (now - lookback) to a real snapshot, then steps forward,
    committing one full tree of per-source package files for every later
    snapshot up to now.

    \b
    Examples:
        # Last 30 days of sid/main/amd64 into the configured repository
        debsnapgit walk
        # A week of bookworm arm64, one snapshot per day
        debsnapgit walk --dist bookworm --arch arm64 --lookback 7d --step 1d
    """
    config = load_config()
    configure_logging(config, verbose=verbose)

    walk_config = apply_overrides(
        WalkConfig.from_config(config),
        dist=dist, component=component, arch=arch, repo=repo,
        step=step, lookback=lookback, base_url=base_url,
    )

    with SnapshotClient(
        base_url=walk_config.base_url,
        archive=walk_config.archive_name,
        timeout=walk_config.http_timeout,
    ) as client:
        result = build_walker(walk_config, client, max_snapshots=max_snapshots).run()

    if pretty:
        from ..render import render_walk_result
        render_walk_result(result)
    else:
        click.echo(json.dumps(result.to_dict()))
