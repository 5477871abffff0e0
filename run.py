#!/usr/bin/env python3
"""Launch checkdisk.

Usage:
    python run.py DEVICE [--config checkdisk.yaml] [--fresh] [--show] [--debug] [--trace] [--verbose]
"""
from checkdisk.main import run

if __name__ == "__main__":
    run()
