"""Terminal system monitor: memory, sessions and CPU usage over N samples."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, TextIO

from sysstats.aggregator import CpuUtilization, RateAggregator
from sysstats.config import MonitorConfig, _deep_merge, dump_default_config, load_config
from sysstats.coordinator import RoundResult, SamplingCoordinator
from sysstats.errors import MetricError, ResourceError
from sysstats.governor import InterruptGovernor
from sysstats.identity import SystemIdentity, self_memory_kb, system_identity
from sysstats.logging_utils import setup_logging
from sysstats.render import (
    CLEAR_SCREEN,
    HistoryRenderer,
    cpu_panel,
    footer_block,
    header_block,
    iteration_marker,
    memory_panel,
    sessions_panel,
)
from sysstats.sources import core_count

logger = logging.getLogger(__name__)

# Which display flag a source's errors belong to
_SOURCE_PANEL = {"memory": "system", "cpu": "system", "sessions": "user"}


# ── Round processing ────────────────────────────────────────────────────────


def _seed_cpu(coordinator: SamplingCoordinator, aggregator: RateAggregator, err: TextIO) -> None:
    """Take the baseline CPU reading before round 0."""
    try:
        aggregator.seed(coordinator.read_once("cpu"))
    except MetricError as e:
        # Round 0 will seed itself from its own reading instead
        print(f"Error: cpu: {e}", file=err)


def _merge_round(
    result: RoundResult,
    aggregator: RateAggregator,
    renderer: HistoryRenderer,
    cores: int,
) -> CpuUtilization | MetricError:
    """Fold one round's samples into the rolling state and the histories."""
    i = result.index

    if result.memory is not None:
        renderer.append_memory_line(i, aggregator.update_memory(result.memory))
    else:
        renderer.append_unavailable("memory", i, result.errors["memory"])

    if result.cpu is not None:
        usage = aggregator.update_cpu(result.cpu, cores)
        renderer.append_cpu_line(i, usage)
        return usage

    error = result.errors["cpu"]
    renderer.append_unavailable("cpu", i, error)
    return error


def render_round(
    config: MonitorConfig,
    result: RoundResult,
    renderer: HistoryRenderer,
    cpu: CpuUtilization | MetricError,
    cores: int,
    memory_kb: int,
    identity: SystemIdentity | None,
) -> list[str]:
    """All dashboard lines for round ``result.index``, top to bottom."""
    i = result.index
    lines = [iteration_marker(i) if config.sequential else CLEAR_SCREEN]
    lines += header_block(config.samples, config.tdelay, memory_kb)

    if config.system:
        lines += memory_panel(
            renderer.memory_history.replay(i),
            padding=config.samples - i - 1,
        )
    if config.user:
        if result.failed("sessions"):
            lines += sessions_panel(result.errors["sessions"])
        else:
            lines += sessions_panel(result.sessions or [])
    if config.system:
        lines += cpu_panel(cpu, renderer.cpu_history.replay(i), cores, config.graphics)

    if identity is not None:
        lines += footer_block(identity)
    return lines


def run(
    config: MonitorConfig,
    coordinator: SamplingCoordinator | None = None,
    aggregator: RateAggregator | None = None,
    governor: InterruptGovernor | None = None,
    out: TextIO | None = None,
    err: TextIO | None = None,
    sleep: Callable[[float], Any] = time.sleep,
) -> int:
    """Sample, aggregate and display ``config.samples`` rounds.

    Returns:
        0 on completion, 1 if the sampling workers could not be started.
    """
    # Left unset, the governor writes to the stdout descriptor directly
    governor = governor if governor is not None else InterruptGovernor(out=out)
    out = out if out is not None else sys.stdout
    err = err if err is not None else sys.stderr
    coordinator = coordinator if coordinator is not None else SamplingCoordinator()
    aggregator = aggregator if aggregator is not None else RateAggregator()
    renderer = HistoryRenderer(config.samples, config.graphics)

    try:
        identity: SystemIdentity | None = system_identity()
    except OSError as e:
        print(f"Error: uname failed: {e}", file=err)
        identity = None

    with governor:
        _seed_cpu(coordinator, aggregator, err)

        for i in range(config.samples):
            try:
                result = coordinator.run_round(i)
            except ResourceError as e:
                print(f"Error: {e}", file=err)
                return 1

            for name, error in result.errors.items():
                if getattr(config, _SOURCE_PANEL.get(name, "system"), True):
                    print(f"Error: {name}: {error}", file=err)

            cores = core_count()
            cpu = _merge_round(result, aggregator, renderer, cores)
            lines = render_round(
                config, result, renderer, cpu, cores, self_memory_kb(), identity
            )
            print("\n".join(lines), file=out, flush=True)

            if i < config.samples - 1:
                sleep(config.tdelay)

    logger.debug("completed %d rounds", config.samples)
    return 0


# ── Command line ────────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sysstats",
        description="Report memory, user sessions and CPU usage over a number of samples.",
    )
    parser.add_argument(
        "counts", nargs="*", type=int, metavar="N",
        help="Number of samples, then seconds between samples",
    )
    parser.add_argument("--samples", type=int, default=None, help="Number of samples (default: 10)")
    parser.add_argument("--tdelay", type=int, default=None, help="Seconds between samples (default: 1)")
    parser.add_argument("-s", "--system", action="store_true", help="Show only system usage")
    parser.add_argument("-u", "--user", action="store_true", help="Show only user sessions")
    parser.add_argument("-g", "--graphics", action="store_true", help="Draw change graphics")
    parser.add_argument(
        "-seq", "--sequential", action="store_true",
        help="Print each sample below the last instead of redrawing",
    )
    parser.add_argument(
        "--config", type=Path, default=None, metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--dump-config", action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    parser.add_argument(
        "--log-level", default=None, metavar="LEVEL",
        help="Diagnostics level on stderr (default: WARNING)",
    )
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_intermixed_args(argv)
    if len(args.counts) > 2:
        parser.error("at most two positional numbers: samples and tdelay")
    return args


def apply_cli(config: dict[str, Any], args: argparse.Namespace) -> dict[str, Any]:
    """Overlay command-line choices on a loaded config dict.

    Explicit ``--samples``/``--tdelay`` win over positional numbers. Passing
    only one of ``--system``/``--user`` hides the other panel.
    """
    overrides: dict[str, Any] = {}
    if len(args.counts) >= 1:
        overrides["samples"] = args.counts[0]
    if len(args.counts) == 2:
        overrides["tdelay"] = args.counts[1]
    if args.samples is not None:
        overrides["samples"] = args.samples
    if args.tdelay is not None:
        overrides["tdelay"] = args.tdelay
    if args.log_level is not None:
        overrides["log_level"] = args.log_level

    panels: dict[str, bool] = {}
    if args.system or args.user:
        panels["system"] = args.system
        panels["user"] = args.user
    if args.graphics:
        panels["graphics"] = True
    if args.sequential:
        panels["sequential"] = True
    if panels:
        overrides["panels"] = panels

    return _deep_merge(config, overrides)


def main() -> None:
    args = parse_args()

    if args.dump_config:
        print(dump_default_config(), end="")
        raise SystemExit(0)

    config = apply_cli(load_config(args.config), args)
    try:
        monitor_config = MonitorConfig.from_mapping(config)
    except ValueError as e:
        print(f"sysstats: invalid configuration: {e}", file=sys.stderr)
        raise SystemExit(1) from e

    setup_logging(str(config.get("log_level", "WARNING")))
    raise SystemExit(run(monitor_config))


if __name__ == "__main__":
    main()
