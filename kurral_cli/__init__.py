# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Kurral CLI Module

Command-line tools for running the pipeline on local JSON files.

Commands:
- run <post.json> [--comments c.json]: Annotate a post (calls the completion service)
- validate <post.json> --bookmarks N --rechirps N --comments N: Check a stored prediction
- rank <posts.json> [--quality-weighted]: Rank posts with the feed formula

Usage:
    python -m kurral_cli run post.json --comments comments.json
    python -m kurral_cli validate post.json --bookmarks 1 --rechirps 0 --comments 1
    python -m kurral_cli rank posts.json
"""

from kurral_cli.pipeline_cmd import main

__all__ = ["main"]
