"""
Main Simulation Orchestrator
============================

Command-line entry point: runs the default three-reactor plant in real time,
logs a periodic summary and optionally serves telemetry over Modbus/TCP.

    python -m enzyme_reactor_sim --duration 600 --modbus --port 5020

Date: October 2026
License: MIT
"""

import argparse
import logging
import signal
import sys
from contextlib import suppress

from .core import PROFILES
from .modbus import ModbusServerConfig, TelemetryGateway
from .plant import FleetSettings, ReactorFleet, SimulationScheduler, create_default_fleet

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Enzyme Reactor Telemetry Simulator")
    parser.add_argument(
        "--seed", type=int, default=20240601, help="Master seed for reactor refreshes"
    )
    parser.add_argument(
        "--period", type=float, default=2.0, help="Fleet tick period [seconds]"
    )
    parser.add_argument(
        "--steps-per-tick", type=int, default=2, help="Simulator steps per fleet tick"
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Total run time [seconds] (default: until interrupted)",
    )
    parser.add_argument(
        "--profile",
        choices=sorted(PROFILES),
        default="standalone",
        help="Process dynamics calibration",
    )
    parser.add_argument(
        "--backfill-points",
        type=int,
        default=288,
        help="History points generated per reactor at startup",
    )
    parser.add_argument(
        "--summary-interval",
        type=float,
        default=60.0,
        help="Seconds between fleet summary log lines",
    )
    parser.add_argument(
        "--modbus", action="store_true", help="Serve telemetry over Modbus/TCP"
    )
    parser.add_argument(
        "--host", type=str, default="127.0.0.1", help="Modbus bind address"
    )
    parser.add_argument("--port", type=int, default=5020, help="Modbus TCP port")
    parser.add_argument(
        "--verbose", action="store_true", help="Enable debug logging"
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> FleetSettings:
    settings = FleetSettings(
        period=args.period,
        steps_per_tick=args.steps_per_tick,
        backfill_points=args.backfill_points,
        master_seed=args.seed,
        profile=PROFILES[args.profile],
    )
    settings.validate()
    return settings


class SummaryLogger:
    """Fleet listener that logs one status line per reactor at an interval."""

    def __init__(self, interval: float):
        self.interval = interval
        self._last = None

    def __call__(self, fleet: ReactorFleet) -> None:
        now = fleet.now
        if self._last is not None and now - self._last < self.interval:
            return
        self._last = now

        stats = fleet.stats
        logger.info(
            f"Fleet | active={stats.active_reactors}/{stats.total_reactors} | "
            f"yield={stats.average_yield:.1f}% | health={stats.system_health:.1f}% | "
            f"critical={stats.critical_alerts}"
        )
        for reactor in fleet.reactors:
            m = reactor.metrics
            logger.info(
                f"  {reactor.id} [{reactor.status.value}] "
                f"T={m.temperature:.2f} pH={m.pH:.2f} Flow={m.flow_rate:.1f} "
                f"A={m.enzyme_activity:.1f}% Y={m.product_yield:.1f}% "
                f"t70={reactor.prediction.enzyme_deactivation.hours_remaining:.0f}h"
            )


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logger.info("=" * 70)
    logger.info("ENZYME REACTOR TELEMETRY SIMULATOR")
    logger.info("=" * 70)

    try:
        settings = settings_from_args(args)
    except ValueError as e:
        logger.error(f"Invalid settings: {e}")
        return 2

    # ========================================================================
    # PHASE 1: Build the plant
    # ========================================================================
    logger.info(
        f"[PHASE 1] Creating reactors (profile={args.profile}, "
        f"backfill={settings.backfill_points} points)..."
    )
    scheduler = SimulationScheduler(period=settings.period)
    fleet = create_default_fleet(settings, scheduler)
    fleet.add_listener(SummaryLogger(args.summary_interval))

    # ========================================================================
    # PHASE 2: Telemetry gateway
    # ========================================================================
    gateway = None
    if args.modbus:
        logger.info("[PHASE 2] Starting Modbus telemetry gateway...")
        try:
            gateway = TelemetryGateway(
                fleet, config=ModbusServerConfig(host=args.host, port=args.port)
            )
            gateway.start()
        except (RuntimeError, ValueError) as e:
            logger.error(f"Modbus gateway startup failed: {e}")
            logger.warning("Continuing without Modbus")
            gateway = None
    else:
        logger.info("[PHASE 2] Modbus disabled")

    # ========================================================================
    # PHASE 3: Real-time loop
    # ========================================================================
    def handle_signal(sig, frame):
        logger.info("Shutdown signal received. Stopping simulation...")
        scheduler.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    logger.info(f"[PHASE 3] Running (tick every {settings.period:.1f}s)")
    logger.info("Press Ctrl+C to stop gracefully")

    exit_code = 0
    try:
        fleet.run(duration=args.duration)
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    except Exception as e:
        logger.exception(f"Simulation error: {type(e).__name__}")
        exit_code = 1
    finally:
        logger.info("Shutting down...")
        if gateway is not None:
            with suppress(Exception):
                gateway.stop()
        fleet.shutdown()
        logger.info(f"Simulation stopped cleanly after {scheduler.tick_count} ticks")

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
