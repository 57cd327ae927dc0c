"""Worker process: converts every file of one chunk and reports progress"""

import logging
import os
import sys
from multiprocessing.connection import Connection
from pathlib import Path

from csvconv import codec
from csvconv.errors import FileParseError
from csvconv.models import ProgressSignal
from csvconv.utils import setup_logging


logger = logging.getLogger(__name__)


def output_path_for(name: str, output_dir: str | Path) -> Path:
    """JSON output path for a CSV file name: <output_dir>/<stem>.json"""
    return Path(output_dir) / f'{Path(name).stem}.json'


def convert_chunk(worker_id: int, chunk: list[str], input_dir: str | Path, output_dir: str | Path, send) -> int:
    """Convert files of a chunk in order, reporting each one through `send`.

    A file that fails to parse is logged and skipped; the rest of the chunk
    still runs. Any other exception propagates.

    Args:
        worker_id: Index of this worker
        chunk: File names relative to input_dir
        input_dir: Directory holding the CSV files
        output_dir: Directory receiving the JSON files
        send: Callable taking a ProgressSignal

    Returns:
        Total records converted by this chunk
    """
    total = 0
    for name in chunk:
        src = Path(input_dir) / name
        dst = output_path_for(name, output_dir)
        try:
            count = codec.convert_file(src, dst)
        except FileParseError as e:
            logger.error(f'Error parsing {name}: {e.reason}')
            send(ProgressSignal.failed(worker_id, name, e.reason))
            continue
        total += count
        send(ProgressSignal.count(worker_id, name, count))
    send(ProgressSignal.completed(worker_id))
    return total


def run_worker(
    worker_id: int,
    chunk: list[str],
    input_dir: str,
    output_dir: str,
    conn: Connection,
    log_level: str | None = None,
) -> None:
    """Process entry point for one worker.

    Signals are sent as plain dicts over `conn`. The connection is closed on
    return so the coordinator sees EOF.
    """
    setup_logging(log_level)
    logger.debug(f'[WORKER {worker_id}] pid {os.getpid()} starting with {len(chunk)} files')

    def send(signal: ProgressSignal) -> None:
        conn.send(signal.model_dump(mode='json'))

    try:
        total = convert_chunk(worker_id, chunk, input_dir, output_dir, send)
        logger.debug(f'[WORKER {worker_id}] finished: {total} records')
    except Exception:
        logger.exception(f'[WORKER {worker_id}] aborted')
        sys.exit(1)
    finally:
        conn.close()
