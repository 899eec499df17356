"""
Greyhole detection: command-line entry point.

Usage:
    python run_detection.py [OPTIONS]

Options:
    --nodes INT        Population size (default: 27)
    --watchdogs INT    Watchdog nodes, ids 0..N-1 (default: 24)
    --drop FLOAT       Greyhole drop probability (default: 0.05)
    --threshold FLOAT  Reputation threshold theta (default: 1.0)
    --max-ticks INT    Evidence samples per watchdog (default: 10)
    --period FLOAT     Watchdog tick period (default: 1.0)
    --packets INT      Packets sent by the traffic source (default: 1000)
    --interval FLOAT   Inter-packet interval (default: 0.01)
    --stop SECONDS     Run duration (default: 30.0)
    --seed INT         RNG seed (default: 1)
    --runs INT         Sweep this many consecutive seeds instead of a single run
    --csv PATH         Write the per-watchdog table (or the sweep table) as CSV
    --plot PREFIX      Save topology and reputation figures as PREFIX_*.png
    --verbose          Show per-node simulation logs
"""

import argparse
import logging
import sys

from config import SimulationConfig
from detection_sim import run_batch, run_detection
from errors import ConfigurationError
from utils import setup_logger

logger = setup_logger("Main")


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Watchdog-based greyhole detection simulation")
    p.add_argument("--nodes", dest="num_nodes", type=int)
    p.add_argument("--watchdogs", dest="num_watchdogs", type=int)
    p.add_argument("--greyhole", dest="greyhole_id", type=int)
    p.add_argument("--source", dest="source_id", type=int)
    p.add_argument("--sink", dest="sink_id", type=int)
    p.add_argument("--drop", dest="drop_probability", type=float)
    p.add_argument("--threshold", type=float)
    p.add_argument("--max-ticks", dest="max_ticks", type=int)
    p.add_argument("--period", dest="tick_period", type=float)
    p.add_argument("--packets", dest="max_packets", type=int)
    p.add_argument("--interval", dest="packet_interval", type=float)
    p.add_argument("--stop", dest="stop_time", type=float, help="Simulated run duration (s)")
    p.add_argument("--seed", type=int)
    p.add_argument("--runs", type=int, default=1)
    p.add_argument("--csv", type=str, default=None)
    p.add_argument("--plot", type=str, default=None)
    p.add_argument("--verbose", action="store_true")
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    if not args.verbose:
        # Disable inner logs for cleaner output
        logging.getLogger("NetworkSim").setLevel(logging.WARNING)

    try:
        config = SimulationConfig.from_args(args)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    if args.runs > 1:
        table = run_batch(config, seeds=range(config.seed, config.seed + args.runs))
        print(table.to_string())
        print(f"Converged in {int(table['converged'].sum())}/{len(table)} runs, "
              f"mean convergence time {table['convergence_time'].mean():.2f}s")
        if args.csv:
            table.to_csv(args.csv)
        return 0

    result = run_detection(config)
    print(result.summary())

    if args.csv:
        result.to_csv(args.csv)
    if args.plot:
        from visualization import plot_reputation, visualize_network

        visualize_network(result.graph, result.statuses(), config.greyhole_id,
                          filename=f"{args.plot}_topology.png")
        plot_reputation(result.watchdogs, config.threshold, filename=f"{args.plot}_reputation.png")
    return 0


if __name__ == "__main__":
    sys.exit(main())
