#!/usr/bin/env python3
"""Convenience runner for the Boundless activity feed browser.

Usage:
    python run.py --input activities.json --near "25.0330, 121.5654"
"""
import logging
import sys

from boundless_feed.main import main

if __name__ == "__main__":
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    sys.exit(main())
