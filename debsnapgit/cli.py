#!/usr/bin/env python3

import sys

import click

from debsnapgit.config import logger
from debsnapgit.exit_codes import CommandError, INTERRUPTED, exit_with_code
from debsnapgit.commands.walk import walk_handler
from debsnapgit.commands.resolve import resolve_handler
from debsnapgit.commands.history import history_handler
from debsnapgit.commands.config import config_cmd


@click.group()
@click.version_option(package_name="debsnapgit")
def cli():
    """debsnapgit - Git history of a Debian binary package index.

    Walks snapshot.debian.org style archives forward in time and commits
    one tree of per-source package files for every snapshot.
    """
    pass


cli.add_command(walk_handler, name='walk')
cli.add_command(resolve_handler, name='resolve')
cli.add_command(history_handler, name='history')
cli.add_command(config_cmd)


def main():
    try:
        cli(standalone_mode=False)
    except click.exceptions.Abort:
        exit_with_code(INTERRUPTED, "Aborted!")
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except CommandError as e:
        logger.error(f"failed to run: {e}")
        sys.exit(e.exit_code)
    return 0

if __name__ == "__main__":
    sys.exit(main() or 0)
