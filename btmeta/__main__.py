#!/usr/bin/env python3
"""btmeta - BitTorrent metainfo and tracker tool."""

from __future__ import annotations

from btmeta.cli.main import main

if __name__ == "__main__":
    main()
