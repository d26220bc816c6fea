#!/usr/bin/env python3
"""
CLI for GC perf-counter collection and reporting
"""
import gc
import json
import sys
import time

import click

from gc_perf.aggregator import get_aggregator
from gc_perf.exceptions import GcPerfError
from gc_perf.reporter import PeriodicReporter
from gc_perf.sinks import build_sink
from gc_perf.utils.config import ConfigManager, SINK_TYPES
from gc_perf.utils.logger import GcPerfLogger, get_logger

log = get_logger('CLI')

# Status for configuration and runtime failures, same as click usage errors
EXIT_FAILURE = 2


@click.group()
@click.option('--log-level', default=None, help='Console log level (e.g. DEBUG, WARNING)')
@click.pass_context
def cli(ctx, log_level):
    """GC perf-counters - young/full collection counts and pause time"""
    ctx.ensure_object(dict)
    ctx.obj['log_level'] = log_level


@cli.command()
@click.option('--collect', is_flag=True, help='Run a full collection first')
@click.pass_context
def dump(ctx, collect: bool):
    """Print current GC counters as JSON"""
    GcPerfLogger().setup(level=ctx.obj['log_level'])

    if collect:
        gc.collect()
    counters = get_aggregator().dump({})
    click.echo(json.dumps(counters, indent=2, sort_keys=True))


@cli.command()
@click.option('--config', default=None, help='Path to YAML config file')
@click.option('--interval', type=int, default=None, help='Seconds between reports')
@click.option('--sink', type=click.Choice(SINK_TYPES), default=None, help='Metrics sink')
@click.option('--cycles', type=int, default=None, help='Stop after this many cycles')
@click.pass_context
def report(ctx, config: str, interval: int, sink: str, cycles: int):
    """Push GC counters periodically"""
    GcPerfLogger(config).setup(level=ctx.obj['log_level'])

    try:
        manager = ConfigManager(config)
        if interval is not None:
            manager.section('reporter')['interval'] = interval
        if sink is not None:
            manager.section('reporter')['sink'] = sink
        reporter_config = manager.get_reporter_config()
    except (GcPerfError, FileNotFoundError) as e:
        log.error("Cannot start reporter: {}", e)
        click.echo(f"✗ Error: {e}", err=True)
        sys.exit(EXIT_FAILURE)

    metrics_sink = build_sink(reporter_config)
    reporter = PeriodicReporter(get_aggregator(), metrics_sink)
    try:
        reporter.start(reporter_config.interval)
        while cycles is None or reporter.cycles < cycles:
            time.sleep(0.1)
    except KeyboardInterrupt:
        log.info("Interrupted")
    finally:
        reporter.stop(reporter_config.stop_timeout)
        metrics_sink.close()

    click.echo(f"✓ Reported {reporter.cycles} cycles")


if __name__ == '__main__':
    cli()
