import argparse
import sys
import time
from dataclasses import replace

from procrate.common.errors import ConfigurationError, EnumerationFailure, IntegrityError
from procrate.common.logger import log, set_log_level
from procrate.common.utils import get_process_tree_pids
from procrate.config import build_config, config_from_env, read_config
from procrate.export import deltas_to_frame, snapshot_to_frame, write_csv
from procrate.sampling.engine import SamplingEngine
from procrate.sampling.units import MemoryUnit

SUMMARY_COLUMNS = ["time", "pid", "utime", "stime", "ttime", "minflt", "mayflt", "cmd"]

def get_args(argv=None):
    parser = argparse.ArgumentParser(description='Sample per-process resource usage rates from /proc')

    parser.add_argument('-c', '--config_file', type=str, default=None, help="Path to a procrate YAML config file. Defaults to PROCRATE_* env variables.")
    parser.add_argument('-p', '--pids', type=int, nargs='+', default=None, help="Only sample these pids.")
    parser.add_argument('--tree', type=int, default=None, help="Sample this pid and all of its descendants.")
    parser.add_argument('--proc_path', type=str, default=None, help="Root of the proc filesystem.")
    parser.add_argument('-u', '--memory_unit', type=str, default=None, choices=[u.value for u in MemoryUnit], help="Unit for memory sizes.")
    parser.add_argument('-i', '--interval', type=float, default=1.0, help="Seconds between samples.")
    parser.add_argument('-n', '--count', type=int, default=1, help="Number of samples to take.")
    parser.add_argument('-o', '--output', type=str, default=None, help="Append results to this CSV file instead of printing them.")
    parser.add_argument('--raw', default=False, action='store_true', help="Print one snapshot of absolute values and exit.")
    parser.add_argument('-v', '--verbose', default=False, action='store_true', help="Enable debug logging.")

    args = parser.parse_args(argv)

    return args

def print_err(msg):
    print(f"ERR: {msg}")

def get_config(args):
    config = read_config(args.config_file) if args.config_file else config_from_env()

    # Overrides
    overrides = {}
    if args.proc_path:
        overrides["files"] = replace(config.files, path=args.proc_path)
    if args.pids is not None and args.tree is not None:
        raise ConfigurationError("Use either --pids or --tree, not both")
    if args.pids is not None:
        overrides["pids"] = build_config(pids=args.pids).pids
    if args.tree is not None:
        overrides["pids"] = tuple(get_process_tree_pids(args.tree))
    if args.memory_unit:
        overrides["pages_to_bytes"] = build_config(memory_unit=args.memory_unit, page_size=config.page_size).pages_to_bytes

    return replace(config, **overrides)

def emit(frame, output_file):
    if output_file:
        write_csv(frame, output_file)
        return
    columns = [c for c in SUMMARY_COLUMNS if c in frame.columns]
    print(frame[columns].to_string(index=False))

def run_sampler(argv=None):
    args = get_args(argv)
    if args.verbose:
        set_log_level("DEBUG")

    if args.interval <= 0:
        print_err("--interval must be positive")
        sys.exit(1)
    if args.count < 1:
        print_err("--count must be at least 1")
        sys.exit(1)

    try:
        config = get_config(args)
    except ConfigurationError as e:
        print_err(e)
        sys.exit(1)

    engine = SamplingEngine(config)
    try:
        if args.raw:
            emit(snapshot_to_frame(engine.raw()), args.output)
            return

        engine.initialize()
        for _ in range(args.count):
            time.sleep(args.interval)
            deltas = engine.sample()
            emit(deltas_to_frame(deltas, engine.baseline.time), args.output)
    except EnumerationFailure as e:
        print_err(f"Could not enumerate processes: {e}")
        sys.exit(1)
    except IntegrityError as e:
        log.error(f"Counter integrity check failed: {e}")
        raise
    except KeyboardInterrupt:
        log.info("Sampling interrupted")

if __name__ == "__main__":
    run_sampler()
