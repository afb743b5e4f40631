from __future__ import annotations
import argparse
from ..config import SimConfig, default_levels
from ..hierarchy import CacheHierarchy
from ..trace import AccessKind, load_trace, stream_trace
from ..utils.reporting import generate_report, format_stat_block
from ..utils.logging import get_logger

logger = get_logger("pyv-cache")


def _workload(config: SimConfig):
    """The configured trace file, or the three-stream workload when none is given."""
    if config.trace:
        return load_trace(config.trace)
    # All bases but the last are read streams, the last one is written
    return stream_trace(config.iterations, config.stride,
                        reads=config.stream_bases[:-1], writes=config.stream_bases[-1:])


def cmd_run(args):
    """Handles the 'run' command."""
    config = SimConfig.from_args(args)

    print("--- Cache Hierarchy Configuration ---")
    for level in config.levels:
        print(level)
    print("-------------------------------------")

    hierarchy = CacheHierarchy.from_config(config)
    count = hierarchy.run(_workload(config))
    logger.info(f"Replayed {count} accesses through {len(hierarchy)} cache level(s)")

    generate_report(hierarchy, config, chart_path=args.chart)

    print(f"[OK] Simulation finished. Reports are in {config.report_dir}")


def cmd_demo(args):
    """Handles the 'demo' command: two write-back LRU levels over three address streams."""
    config = SimConfig(levels=default_levels(), iterations=args.iterations, verbose=args.verbose)
    hierarchy = CacheHierarchy.from_config(config)

    for i, op in enumerate(_workload(config)):
        if config.verbose and i % 3 == 0:
            logger.info(f"-------- iter {i // 3 + 1} --------")
        if op.kind == AccessKind.READ:
            hierarchy.read(op.address)
        else:
            hierarchy.write(op.address)

    for level in hierarchy:
        print(format_stat_block(level.name, level.stats))


def build_parser():
    p = argparse.ArgumentParser(
        prog="pyv-cache",
        description="Set-associative multi-level cache hierarchy simulator",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # --- Run Command ---
    pr = sub.add_parser("run", help="Replay an address trace through a cache hierarchy",
                        formatter_class=argparse.ArgumentDefaultsHelpFormatter)

    # Config file
    pr.add_argument("-c", "--config", type=str, default=None,
                    help="Path to YAML config file to override defaults")

    # Core args (set default=None to allow override from YAML)
    pr.add_argument("trace", nargs='?', default=None,
                    help="Path to trace file, one '<R|W> <address>' per line "
                         "(optional; the stream workload is used otherwise)")
    pr.add_argument("--report", type=str, default=None, dest="report_dir",
                    help="Directory to save simulation reports")
    pr.add_argument("--chart", type=str, default=None,
                    help="Path to save the hit/miss chart HTML file")
    pr.add_argument("-v", "--verbose", action="store_true", default=None,
                    help="Trace every access at every level")

    # Stream workload args
    stream_group = pr.add_argument_group('Stream Workload Arguments')
    stream_group.add_argument("--iterations", type=int, default=None,
                              help="Number of stream iterations")
    stream_group.add_argument("--stride", type=int, default=None,
                              help="Address stride between iterations, in bytes")

    pr.set_defaults(func=cmd_run)

    # --- Demo Command ---
    pd = sub.add_parser("demo", help="Run the built-in two-level example",
                        formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    pd.add_argument("--iterations", type=int, default=16384,
                    help="Number of stream iterations")
    pd.add_argument("-v", "--verbose", action="store_true",
                    help="Trace every access at every level")
    pd.set_defaults(func=cmd_demo)

    return p


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    main()
