import logging
import os
import time

import click
import requests

from .cache import LocalCache
from .sync import ScoreSyncAgent, time_ago

DEFAULT_PLAYERS = 'raehan,omar,mahir,hadi,fawaz'
RANK_MARKS = {1: '1st', 2: '2nd', 3: '3rd'}


def _print_notice(title, message):
    click.echo(f'{title}: {message}', err=True)


def _print_board(agent: ScoreSyncAgent) -> None:
    for rank, name, score in agent.leaderboard():
        click.echo(f"{RANK_MARKS.get(rank, f'{rank}th'):>4}  {name:<10} {score}")
    try:
        click.echo(f'Last updated: {time_ago(agent.board.last_updated)}')
    except ValueError:
        pass


@click.group()
@click.option('--url', envvar='SCOREBOARD_URL', default='http://localhost:5000', show_default=True, help='Server base URL.')
@click.option('--password', envvar='SCOREBOARD_PASSWORD', default=None, help='Shared password for updates.')
@click.option('--cache', 'cache_path', envvar='SCOREBOARD_CACHE',
              default=os.path.join(os.path.expanduser('~'), '.scoreboard', 'scores.json'), show_default=True)
@click.option('--players', envvar='SCOREBOARD_PLAYERS', default=DEFAULT_PLAYERS, show_default=True)
@click.option('-v', '--verbose', is_flag=True)
@click.pass_context
def cli(ctx, url, password, cache_path, players, verbose):
    """Squad scoreboard client."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    if ctx.obj is None:
        names = [p.strip() for p in players.split(',') if p.strip()]
        ctx.obj = ScoreSyncAgent(url, names, LocalCache(cache_path, names), password=password, notify=_print_notice)


@cli.command()
@click.pass_obj
def show(agent):
    """Fetch and print the board."""
    agent.load_scores()
    _print_board(agent)


@cli.command()
@click.argument('player')
@click.argument('change', type=int)
@click.pass_obj
def update(agent, player, change):
    """Add CHANGE (may be negative) to PLAYER's score."""
    if not agent.password:
        agent.password = click.prompt('Password', hide_input=True)
    try:
        if not agent.authenticate():
            raise click.ClickException('Invalid password')
    except requests.RequestException:
        click.echo('Server unreachable, the update will be applied locally.', err=True)
    agent.load_scores()
    outcome = agent.update_score(player.lower(), change)
    _print_board(agent)
    if outcome == 'rejected':
        raise click.ClickException('Update rejected by server')
    if outcome == 'invalid':
        raise click.ClickException(f'Invalid update for {player}')


@cli.command()
@click.option('--interval', default=30.0, show_default=True, help='Seconds between refresh checks.')
@click.option('--count', default=0, show_default=True, help='Stop after this many refreshes (0 runs forever).')
@click.pass_obj
def watch(agent, interval, count):
    """Print the board whenever it changes."""
    last = None
    done = 0
    while True:
        agent.load_scores()
        if agent.board.scores != last:
            _print_board(agent)
            last = dict(agent.board.scores)
        done += 1
        if count and done >= count:
            break
        time.sleep(interval)
