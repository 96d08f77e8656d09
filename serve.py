#!/usr/bin/env python3
from siteserve.cli import main

if __name__ == "__main__":
    main()
