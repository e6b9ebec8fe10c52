#!/usr/bin/env python3
"""
GotNodes CLI Interface
"""

import click
import sys
import logging

from .aggregator import MetricsAggregator, setup_logging
from .config import Settings
from .exceptions import GotNodesException
from .response_format import classify_error, format_json


def emit(data, pretty=False, output=None, quiet=False):
    """Print JSON to stdout, or save it to a file"""
    text = format_json(data, pretty)
    if output:
        with open(output, 'w') as f:
            f.write(text)
        if not quiet:
            click.echo(f"Results saved to {output}", err=True)
    else:
        click.echo(text)


def run_or_exit(ctx, action):
    """Run an aggregator call; library errors become the JSON envelope and exit code 1"""
    try:
        return action(ctx.obj['aggregator'])
    except GotNodesException as e:
        _, envelope = classify_error(e)
        click.echo(format_json(envelope, ctx.obj['pretty']))
        sys.exit(1)


@click.group()
@click.option('--timeout', type=int, default=None, help='Upstream request timeout in seconds')
@click.option('--workers', type=int, default=None, help='Concurrent upstream requests')
@click.option('--network', default=None, help='Network name (default: mainnet)')
@click.option('--pretty', is_flag=True, help='Pretty-print JSON output (default: compact)')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--quiet', is_flag=True, help='Suppress output except results')
@click.pass_context
def cli(ctx, timeout, workers, network, pretty, debug, quiet):
    """GotNodes: Ethereum and Avalanche validator and chain metrics"""

    # Set up logging
    if debug:
        setup_logging(logging.DEBUG)
    elif quiet:
        setup_logging(logging.ERROR)
    else:
        setup_logging(logging.INFO)

    settings = Settings.from_env()
    if timeout is not None:
        settings.timeout = timeout
    if workers is not None:
        settings.max_workers = workers
    if network:
        settings.network = network

    ctx.ensure_object(dict)
    ctx.obj['settings'] = settings
    ctx.obj['pretty'] = pretty
    ctx.obj['quiet'] = quiet
    ctx.obj['aggregator'] = MetricsAggregator(settings)


@cli.command()
@click.option('--host', default=None, help='Bind address')
@click.option('--port', type=int, default=None, help='Bind port')
@click.pass_context
def serve(ctx, host, port):
    """Serve the HTTP API"""
    import uvicorn
    from .server import create_app

    settings = ctx.obj['settings']
    try:
        app = create_app(settings, ctx.obj['aggregator'])
    except GotNodesException as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    uvicorn.run(app, host=host or settings.host, port=port or settings.port,
                log_level='debug' if logging.getLogger().level <= logging.DEBUG else 'info')


@cli.command()
@click.option('--chain', required=True, help='ethereum or avalanche')
@click.argument('identifiers', nargs=-1)
@click.option('--include-series', is_flag=True, help='Attach balance history (Ethereum only)')
@click.option('--window', default='30d', help='APY/ROI window (Ethereum only)')
@click.option('--output', type=click.Path(), help='Save results to file')
@click.pass_context
def lookup(ctx, chain, identifiers, include_series, window, output):
    """Look up validators by public key, index or NodeID"""
    if not identifiers:
        click.echo("Error: at least one identifier is required", err=True)
        sys.exit(1)

    result = run_or_exit(ctx, lambda agg: agg.validator_lookup(
        chain, list(identifiers), include_series=include_series, window=window))
    emit(result, ctx.obj['pretty'], output, ctx.obj['quiet'])

    if not ctx.obj['quiet']:
        failed = sum(1 for record in result['validators'] if record.get('message'))
        click.echo(f"Looked up {len(result['validators'])} identifiers via {result['source']}"
                   f" ({failed} unresolved)", err=True)


@cli.command()
@click.option('--chain', required=True, help='ethereum or avalanche')
@click.option('--output', type=click.Path(), help='Save results to file')
@click.pass_context
def stats(ctx, chain, output):
    """Network-level staking stats"""
    result = run_or_exit(ctx, lambda agg: agg.chain_stats(chain))
    emit(result.to_dict(), ctx.obj['pretty'], output, ctx.obj['quiet'])


@cli.command()
@click.option('--chain', required=True, help='ethereum or avalanche')
@click.option('--output', type=click.Path(), help='Save results to file')
@click.pass_context
def charts(ctx, chain, output):
    """TVL series and weekly volume candles"""
    result = run_or_exit(ctx, lambda agg: agg.chain_charts(chain))
    emit(result.to_dict(), ctx.obj['pretty'], output, ctx.obj['quiet'])


@cli.command()
@click.option('--chain', default='ethereum', help='ethereum or avalanche')
@click.option('--output', type=click.Path(), help='Save results to file')
@click.pass_context
def tvl(ctx, chain, output):
    """Current TVL, fees and stablecoin summary"""
    result = run_or_exit(ctx, lambda agg: agg.chain_tvl(chain))
    emit(result, ctx.obj['pretty'], output, ctx.obj['quiet'])


if __name__ == "__main__":
    cli()
