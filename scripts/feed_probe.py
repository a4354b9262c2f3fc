#!/usr/bin/env python3
"""Live probe for an AIS feed server.

Opens one viewport subscription and prints what arrives:
1) lifecycle events (open, subscribe, close, reconnect),
2) one summary line per snapshot,
3) a short summary on exit.

Use this to check that a feed server answers subscriptions and how often it
pushes snapshots for a given region.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import signal
import sys
import time
from dataclasses import dataclass
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from aisview import AisViewConfig, AisViewer, ClientEvent, ClientEventKind, Snapshot  # noqa: E402
from aisview.exceptions import AisViewConfigError  # noqa: E402

_LOG = logging.getLogger("feed_probe")


@dataclass
class ProbeStats:
    started_at: float
    snapshots: int = 0
    max_targets: int = 0
    reconnects: int = 0
    last_snapshot_at: float | None = None


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Subscribe to an AIS feed for one viewport and print snapshots.",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Feed WebSocket URL (default: AISVIEW_URL or ws://localhost:8080/ais).",
    )
    parser.add_argument(
        "--bounds",
        default=None,
        help='Viewport as JSON "[[lon, lat], [lon, lat]]" or "lon,lat,lon,lat".',
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--targets",
        action="store_true",
        help="Print every target of each snapshot as JSON.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _bounds_override(text: str | None) -> dict[str, object]:
    if text is None:
        return {}
    text = text.strip()
    if text.startswith("["):
        (lon1, lat1), (lon2, lat2) = json.loads(text)
    else:
        lon1, lat1, lon2, lat2 = (float(part) for part in text.split(","))
    return {"initial_bounds": ((float(lon1), float(lat1)), (float(lon2), float(lat2)))}


def _print_summary(stats: ProbeStats) -> None:
    runtime = time.time() - stats.started_at
    print("[probe] Summary")
    print(f"[probe]   runtime_s   : {runtime:.1f}")
    print(f"[probe]   snapshots   : {stats.snapshots}")
    print(f"[probe]   max_targets : {stats.max_targets}")
    print(f"[probe]   reconnects  : {stats.reconnects}")
    if stats.last_snapshot_at is not None:
        last = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(stats.last_snapshot_at))
        print(f"[probe]   last_snapshot : {last}")


async def _run(config: AisViewConfig, args: argparse.Namespace, stats: ProbeStats) -> None:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)

    def on_event(event: ClientEvent) -> None:
        if event.kind is ClientEventKind.SNAPSHOT:
            return
        if event.kind is ClientEventKind.RECONNECT_SCHEDULED:
            stats.reconnects += 1
        detail = f" {event.message}" if event.message else ""
        if event.delay is not None:
            detail += f" delay={event.delay:.2f}s"
        print(f"[probe] {event.kind} generation={event.generation} state={event.state}{detail}")

    def on_snapshot(snapshot: Snapshot) -> None:
        count = len(snapshot.targets)
        stats.snapshots += 1
        stats.max_targets = max(stats.max_targets, count)
        stats.last_snapshot_at = time.time()
        print(f"[probe] snapshot generation={snapshot.generation} targets={count}")
        if args.targets:
            for target in snapshot.targets:
                print(json.dumps(target.to_feature(), ensure_ascii=False, sort_keys=True))

    async with AisViewer(config, on_event=on_event) as viewer:
        viewer.add_snapshot_listener(on_snapshot)
        print(f"[probe] Subscribing to {viewer.viewport}")
        if args.duration > 0:
            try:
                await asyncio.wait_for(stop_event.wait(), args.duration)
            except TimeoutError:
                print(f"[probe] Reached --duration={args.duration}s, stopping.")
        else:
            await stop_event.wait()


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides: dict[str, object] = {}
    if args.url is not None:
        overrides["url"] = args.url
    try:
        overrides.update(_bounds_override(args.bounds))
        config = AisViewConfig.from_env(**overrides)
    except (AisViewConfigError, ValueError) as exc:
        print(f"[probe] Invalid configuration: {exc}", file=sys.stderr)
        return 2

    stats = ProbeStats(started_at=time.time())
    try:
        asyncio.run(_run(config, args, stats))
    finally:
        _print_summary(stats)
    _LOG.debug("Probe finished")
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
