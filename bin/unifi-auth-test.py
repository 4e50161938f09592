#!/usr/bin/env python3
# ruff: noqa: D100
import sys

from unifiauth.cli import main

if __name__ == "__main__":
    sys.exit(main())
