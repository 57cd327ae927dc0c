"""Main CLI entry point"""

import json
import logging
import multiprocessing
import sys

import click

from csvconv.__version__ import __version__
from csvconv.coordinator import Coordinator
from csvconv.errors import DirectoryError, MissingArgumentError
from csvconv.models import RunSummary
from csvconv.prometheus import write_metrics
from csvconv.utils import get_output_dir, get_stall_timeout, setup_logging


logger = logging.getLogger(__name__)

# Exit status when at least one worker crashed or was stopped as stalled
EXIT_PARTIAL = 2


@click.command('csvconv')
@click.argument('directory', required=False)
@click.option('--output-dir', '-o', default=None, help='Where JSON files go (default: converted/ next to csvconv)')
@click.option('--workers', '-w', type=click.IntRange(min=1), default=None, help='Worker processes (default: CPU count)')
@click.option(
    '--stall-timeout',
    type=float,
    default=None,
    help='Terminate a worker that reports nothing for this many seconds (default: disabled)',
)
@click.option('--json', 'json_output', is_flag=True, help='Output the run summary as JSON')
@click.option('--metrics-file', default=None, help='Write Prometheus metrics to this file after the run')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.version_option(version=__version__, prog_name='csvconv')
def cli(
    directory: str | None,
    output_dir: str | None,
    workers: int | None,
    stall_timeout: float | None,
    json_output: bool,
    metrics_file: str | None,
    verbose: bool,
):
    """
    Convert every CSV file in DIRECTORY to JSON using parallel worker processes.

    Each NAME.csv becomes NAME.json: an array with one object per data row,
    keyed by the header. Files are split into one contiguous chunk per worker.

    \b
    Examples:
      csvconv ./exports
      csvconv ./exports -o /tmp/json --workers 4
      csvconv ./exports --json --metrics-file run.prom

    \b
    Exit codes:
      0  all workers finished (files that failed to parse are skipped)
      1  missing DIRECTORY or unreadable directory
      2  a worker crashed or stalled; some files were left unconverted
    """
    setup_logging('DEBUG' if verbose else None)

    try:
        if not directory:
            raise MissingArgumentError()
        coordinator = Coordinator(
            output_dir=get_output_dir(output_dir),
            workers=workers,
            stall_timeout=get_stall_timeout(stall_timeout),
        )
        summary = coordinator.run_all(directory)
    except MissingArgumentError as e:
        click.echo(f'Error: {e}', err=True)
        sys.exit(1)
    except DirectoryError as e:
        click.echo(f'Error reading directory: {e}', err=True)
        sys.exit(1)

    if json_output:
        click.echo(json.dumps(summary.model_dump(mode='json'), indent=2))
    else:
        _output_human_readable(summary)

    if metrics_file:
        write_metrics(metrics_file)
        logger.debug(f'Metrics written to {metrics_file}')

    if not summary.clean:
        sys.exit(EXIT_PARTIAL)


def _output_human_readable(summary: RunSummary):
    """Output the run summary in human-readable format."""
    click.echo(f'\nTotal records: {summary.total_records}')
    click.echo(f'Parsing duration: {summary.duration_ms}ms')

    if summary.files_failed:
        click.echo(f'Failed files: {len(summary.files_failed)}')
        for name, reason in summary.files_failed.items():
            click.echo(f'  {name}: {reason}')

    if summary.unconverted_files:
        click.echo(f'Unconverted files (worker crashed): {len(summary.unconverted_files)}')
        for name in summary.unconverted_files:
            click.echo(f'  {name}')


def main():
    """Entry point for the CLI"""
    # Support for multiprocessing in frozen binaries (PyInstaller)
    # https://docs.python.org/3/library/multiprocessing.html#multiprocessing.freeze_support
    multiprocessing.freeze_support()

    cli()


if __name__ == '__main__':
    main()
