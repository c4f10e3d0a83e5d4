#!/usr/bin/env python3
"""
run_scenario.py - wlansim Scenario Execution

Runs a wireless echo scenario from a YAML file or a built-in preset.

Usage:
    python3 -m wlansim.harness.run_scenario                       # adhoc preset
    python3 -m wlansim.harness.run_scenario --preset infrastructure
    python3 -m wlansim.harness.run_scenario scenarios/adhoc_grid.yaml --nWifi=8
    python3 -m wlansim.harness.run_scenario --nWifi=19              # exits 1

Exit codes:
    0  normal completion
    1  invalid node count (grid capacity) or other configuration error
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from wlansim.config.presets import PRESETS
from wlansim.config.scenario import Scenario, load_scenario
from wlansim.harness.launcher import SimulationLauncher, configure_logging
from wlansim.network.topology import GridCapacityError


def str_to_bool(value: str) -> bool:
    """Parse command-line booleans (true/false, 1/0, yes/no)."""
    lowered = value.lower()
    if lowered in ['true', '1', 'yes', 'on']:
        return True
    if lowered in ['false', '0', 'no', 'off']:
        return False
    raise argparse.ArgumentTypeError(f"expected a boolean, got '{value}'")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Run a wireless UDP echo scenario.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Ad-hoc preset with 8 nodes, no capture
  python3 -m wlansim.harness.run_scenario --nWifi=8 --tracing=false

  # Infrastructure preset, quiet echo applications
  python3 -m wlansim.harness.run_scenario --preset infrastructure --verbose=false

  # YAML scenario, capture CSV files written to out/
  python3 -m wlansim.harness.run_scenario scenarios/adhoc_grid.yaml --output-dir out
        """
    )

    parser.add_argument(
        "config",
        type=Path,
        nargs="?",
        default=None,
        help="Path to scenario YAML file (default: use --preset)"
    )

    parser.add_argument(
        "--preset",
        choices=sorted(PRESETS),
        default="adhoc",
        help="Built-in scenario used when no YAML file is given (default: adhoc)"
    )

    parser.add_argument(
        "--nWifi",
        dest="n_wifi",
        type=int,
        default=None,
        help="Number of wifi devices (overrides the scenario)"
    )

    parser.add_argument(
        "--verbose",
        type=str_to_bool,
        nargs="?",
        const=True,
        default=None,
        help="Tell echo applications to log if true"
    )

    parser.add_argument(
        "--tracing",
        type=str_to_bool,
        nargs="?",
        const=True,
        default=None,
        help="Enable frame capture if true"
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Override random seed (default: use seed from scenario)"
    )

    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for capture CSV files (default: keep captures in memory)"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate scenario without executing (validate only)"
    )

    return parser.parse_args(argv)


def load(args: argparse.Namespace) -> Scenario:
    if args.config is not None:
        print(f"Loading scenario from: {args.config}")
        scenario = load_scenario(str(args.config))
    else:
        scenario = PRESETS[args.preset]()

    return scenario.with_overrides(
        n_wifi=args.n_wifi,
        verbose=args.verbose,
        tracing=args.tracing,
        seed=args.seed,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        0 on success, 1 on failure
    """
    args = parse_args(argv)

    if args.config is not None and not args.config.exists():
        print(f"ERROR: Scenario file not found: {args.config}", file=sys.stderr)
        return 1

    try:
        scenario = load(args)
        configure_logging(scenario.verbose)
        launcher = SimulationLauncher(scenario, output_dir=args.output_dir)

        if args.dry_run:
            print("\n" + "="*60)
            print("DRY RUN MODE - Validation Only")
            print("="*60)

            errors = launcher.validate_scenario()
            if errors:
                print("\n✗ Scenario validation FAILED:")
                for error in errors:
                    print(f"  - {error}")
                return 1

            print("\n✓ Scenario validation PASSED")
            print("\nScenario summary:")
            print(f"  Stop time: {scenario.stop_time_s}s")
            print(f"  Seed: {scenario.seed}")
            print(f"  Mode: {scenario.topology.mode}")
            print(f"  Nodes: {scenario.topology.n_wifi}")
            print(f"  Servers: {len(scenario.servers)}  Clients: {len(scenario.clients)}")
            print(f"  Tracing: {scenario.tracing}")
            print("\n(Use without --dry-run to execute)")
            return 0

        result = launcher.run()

    except GridCapacityError as e:
        print(str(e))
        return 1

    except ValueError as e:
        print(f"\nERROR: Invalid scenario configuration:", file=sys.stderr)
        print(f"  {e}", file=sys.stderr)
        return 1

    except Exception as e:
        print(f"\nERROR: Unexpected error:", file=sys.stderr)
        print(f"  {type(e).__name__}: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1

    if not result.success:
        print("\n✗ FAILED")
        print(f"\nError: {result.error_message}", file=sys.stderr)
        return 1

    print("\nResults:")
    print(f"  Virtual time: {result.virtual_time_s:.2f}s")
    print(f"  Events executed: {result.events_executed}")
    for node_id, trips in sorted(result.round_trips.items()):
        print(f"  Client node {node_id}: {result.packets_sent[node_id]} sent, {len(trips)} echoed")
    if result.capture_artifacts:
        print(f"  Capture artifacts: {', '.join(result.capture_artifacts)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
