"""
History command for debsnapgit.

Lists the snapshot commits of the archive repository.
"""

import json
from pathlib import Path

import click

from ..config import load_config, WalkConfig
from ..infra.git_client import GitClient


@click.command('history')
@click.option('--repo', type=click.Path(file_okay=False), help='Archive git repository path')
@click.option('-n', '--limit', type=int, default=20, show_default=True,
              help='Maximum commits to show (0 for all)')
@click.option('--pretty', is_flag=True, help='Display as a table')
def history_handler(repo, limit, pretty):
    """
    Show the archived snapshots, newest first.

    By default, outputs one JSON object per line (JSONL).
    """
    config = load_config()
    walk_config = WalkConfig.from_config(config)
    path = Path(repo).expanduser() if repo else walk_config.repository_path

    client = GitClient(timeout=walk_config.git_timeout)
    if not client.is_git_repo(str(path)):
        raise click.ClickException(f"No archive repository at {path}")

    commits = client.log(str(path), limit=limit or None)

    if pretty:
        from ..render import render_history
        render_history(commits)
        return

    for commit in commits:
        click.echo(json.dumps({
            'commit': commit.hash,
            'date': commit.date.isoformat(),
            'message': commit.message,
        }))
