from __future__ import annotations

import argparse
import json
import sys

from hostwatch.core.config import DEFAULT_CONFIG_PATH, load_config, save_config
from hostwatch.core.errors import ConfigError


def main() -> int:
    ap = argparse.ArgumentParser(description="Print the effective hostwatch config.")
    ap.add_argument("--config", default=DEFAULT_CONFIG_PATH)
    ap.add_argument("--write-defaults", action="store_true", help="Write the effective config back to --config.")
    args = ap.parse_args()
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        print(json.dumps(e.to_dict(), indent=2, default=str), file=sys.stderr)
        return 2
    if args.write_defaults:
        save_config(args.config, cfg)
    print(json.dumps(cfg.model_dump(mode="json"), indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    sys.exit(main())
