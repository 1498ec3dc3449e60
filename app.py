from __future__ import annotations

import argparse
import json
import signal
import sys
from typing import Any, Dict, List, Optional

from hostwatch.core.agent import build_agent
from hostwatch.core.config import DEFAULT_CONFIG_PATH, load_config
from hostwatch.core.errors import ConfigError
from hostwatch.core.logger import setup_logging


def _cli_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if args.platform:
        out["platform"] = args.platform
    if args.interval is not None:
        out["sample_interval_seconds"] = args.interval
    if args.alerts_path:
        out.setdefault("alerts", {})["path"] = args.alerts_path
    if args.endpoint:
        out.setdefault("sink", {})["endpoint"] = args.endpoint
    if args.no_sink:
        out.setdefault("sink", {})["enabled"] = False
    return out


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="hostwatch: host metric sampling and threshold alerts")
    ap.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to the JSON config file (missing file = defaults).")
    ap.add_argument("--platform", choices=["desktop", "mobile"], default=None, help="Override the configured platform.")
    ap.add_argument("--interval", type=float, default=None, help="Sampling interval in seconds.")
    ap.add_argument("--alerts-path", default=None, help="Where triggered alerts are appended.")
    ap.add_argument("--endpoint", default=None, help="HTTP endpoint the gauge sink POSTs to.")
    ap.add_argument("--no-sink", action="store_true", help="Disable the gauge sink.")
    ap.add_argument("--once", action="store_true", help="Take one sample, evaluate it, print it and exit.")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = load_config(args.config, overrides=_cli_overrides(args))
    except ConfigError as e:
        print(f"{e} {json.dumps(e.context, default=str)}", file=sys.stderr)
        return 2

    logger = setup_logging(cfg.log_dir, cfg.log_level)
    try:
        agent = build_agent(cfg, logger=logger)
    except ConfigError as e:
        logger.error(f"Startup failed: {e}")
        return 2
    controller = agent.controller

    if args.once:
        sample = controller.tick()
        controller.stop()
        print(json.dumps(sample.model_dump() if sample else {}, indent=2, sort_keys=True))
        return 0

    def _on_signal(signum, _frame) -> None:
        logger.info(f"Signal {signum} received; stopping.")
        controller.stop()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    controller.start()
    logger.info(f"hostwatch running: {json.dumps(agent.status(), default=str)}")
    while not controller.wait(0.5):
        pass
    logger.info(f"hostwatch exited: {json.dumps(agent.persister.stats())}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
