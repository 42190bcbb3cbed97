#!/usr/bin/env python3
"""
healthcheck.py
- Healthcheck script for Docker HEALTHCHECK or an exec health check.
- Returns exit code 0 if /healthz reports ok, 1 if not.
"""

import os
import sys

import requests

from preoomkiller.core.constants import DEFAULT_API_PORT


def check(url, timeout=3):
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        print(f"Healthcheck failed: {url} unreachable ({e})")
        return False

    if response.status_code != 200:
        print(f"Healthcheck failed: {url} returned {response.status_code} {response.text.strip()}")
        return False
    return True


def main():
    port = os.getenv("PREOOMKILLER_API_PORT", str(DEFAULT_API_PORT))
    url = os.getenv("PREOOMKILLER_HEALTH_URL", f"http://127.0.0.1:{port}/healthz")
    sys.exit(0 if check(url) else 1)


if __name__ == "__main__":
    main()
