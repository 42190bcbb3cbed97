#!/usr/bin/env python3
"""
entrypoint.py
- Command-line entrypoint installed as `preoomkiller`.
- Usage:
    preoomkiller [run|once] [--interval 60] [--dry-run] [--kubeconfig PATH] ...

- `run`  reconciles on an interval until SIGTERM/SIGINT.
- `once` runs a single cycle and exits non-zero if pods could not be listed.
"""

import sys

from loguru import logger

from preoomkiller.core.config import build_parser, load_settings
from preoomkiller.core.errors import ConfigError
from preoomkiller.main import run


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args)
    except ConfigError as e:
        logger.error(f"[config] {e}")
        return 2

    return run(settings, command=args.command)


if __name__ == "__main__":
    sys.exit(main())
