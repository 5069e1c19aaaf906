# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors
"""
Pipeline CLI Commands

Commands:
- run: Annotate one post (needs OPENAI_API_KEY)
- validate: Validate a stored engagement prediction against observed counters
- rank: Rank a list of posts with the feed formula
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, NoReturn

from pydantic import ValidationError


def _load_json(path_str: str) -> Any:
    path = Path(path_str)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def _write_output(payload: Any, output: str | None) -> None:
    text = json.dumps(payload, ensure_ascii=False, indent=2, default=str)
    if output:
        Path(output).write_text(text, encoding="utf-8")
        print(f"Output written to {output}")
    else:
        print(text)


def cmd_run(args: argparse.Namespace) -> int:
    """Run every pipeline stage for a post and print the annotation."""
    from kurral_core.config import KurralConfig
    from kurral_core.engine import KurralEngine
    from kurral_core.schema.post import Comment, Post

    try:
        post = Post.from_dict(_load_json(args.post_file))
        raw_comments = _load_json(args.comments) if args.comments else []
        if isinstance(raw_comments, dict) and "comments" in raw_comments:
            raw_comments = raw_comments["comments"]
        if not isinstance(raw_comments, list):
            print("✗ Comments JSON must be a list or {comments:[...]}.", file=sys.stderr)
            return 1
        comments = [Comment.from_dict({"post_id": post.id, **c}) for c in raw_comments]
    except (FileNotFoundError, json.JSONDecodeError, ValidationError, TypeError) as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        print("✗ OPENAI_API_KEY is not set", file=sys.stderr)
        return 1

    async def _run() -> dict[str, Any]:
        engine = KurralEngine(KurralConfig(openai_api_key=api_key, openai_base_url=os.getenv("OPENAI_BASE_URL")))
        try:
            annotated = await engine.annotate(post, comments)
        finally:
            await engine.close()
        return annotated.to_dict()

    result = asyncio.run(_run())
    _write_output(result, args.output_json)
    return 0 if result.get("pipeline_state") == "completed" else 1


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate the prediction stored on a post."""
    from kurral_core.schema.engagement import EngagementCounters
    from kurral_core.schema.post import Post
    from kurral_core.scoring.validation import validate_prediction

    try:
        post = Post.from_dict(_load_json(args.post_file))
    except (FileNotFoundError, json.JSONDecodeError, ValidationError, TypeError) as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    if post.predicted_engagement is None:
        print(f"✗ Post '{post.id}' has no predicted engagement", file=sys.stderr)
        return 1

    observed = EngagementCounters(
        bookmark_count=args.bookmarks if args.bookmarks is not None else post.bookmark_count,
        rechirp_count=args.rechirps if args.rechirps is not None else post.rechirp_count,
        comment_count=args.comments if args.comments is not None else post.comment_count,
    )
    validation = validate_prediction(post.predicted_engagement, observed)

    mark = "⚠" if validation.flagged_for_review else "✓"
    print(f"{mark} Post '{post.id}': overall error {validation.overall_error:.2f}")
    print(f"  Bookmarks: {validation.bookmark_error:.2f}")
    print(f"  Rechirps: {validation.rechirp_error:.2f}")
    print(f"  Comments: {validation.comment_error:.2f}")
    print(f"  Flagged for review: {validation.flagged_for_review}")
    return 0


def cmd_rank(args: argparse.Namespace) -> int:
    """Rank posts and print score breakdowns."""
    from kurral_core.runtime_config import EngineRuntimeConfig
    from kurral_core.schema.post import Post
    from kurral_core.scoring.ranking import rank_posts

    try:
        payload = _load_json(args.posts_file)
        if isinstance(payload, dict) and "posts" in payload:
            payload = payload["posts"]
        if not isinstance(payload, list):
            print("✗ Posts JSON must be a list or {posts:[...]}.", file=sys.stderr)
            return 1
        posts = [Post.from_dict(p) for p in payload]
    except (FileNotFoundError, json.JSONDecodeError, ValidationError, TypeError) as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    runtime = EngineRuntimeConfig.load_from_env()
    quality_weighted = args.quality_weighted or runtime.features.quality_weighted_ranking
    ranked = rank_posts(posts, limit=args.limit, config=runtime.ranking, quality_weighted=quality_weighted)

    if args.output_json:
        _write_output([rp.breakdown.to_dict() for rp in ranked], args.output_json)
        return 0

    for i, rp in enumerate(ranked, start=1):
        print(f"{i:>3}. {rp.post.id:<24} {rp.score:7.2f}  {rp.breakdown.explanation}")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="kurral-cli",
        description="Content trust and value pipeline commands",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # run command
    run_parser = subparsers.add_parser(
        "run",
        help="Annotate a post (claims, verdicts, trust status, value, prediction)",
    )
    run_parser.add_argument(
        "post_file",
        help="Path to post JSON",
    )
    run_parser.add_argument(
        "--comments", "-c",
        help="Path to comments JSON (list or {comments:[...]})",
    )
    run_parser.add_argument(
        "--output-json",
        help="Write the annotation JSON to this path",
    )
    run_parser.set_defaults(func=cmd_run)

    # validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a post's engagement prediction against observed counters",
    )
    validate_parser.add_argument(
        "post_file",
        help="Path to post JSON (must include predictedEngagement)",
    )
    validate_parser.add_argument("--bookmarks", type=int, help="Observed bookmarks (default: post value)")
    validate_parser.add_argument("--rechirps", type=int, help="Observed rechirps (default: post value)")
    validate_parser.add_argument("--comments", type=int, help="Observed comments (default: post value)")
    validate_parser.set_defaults(func=cmd_validate)

    # rank command
    rank_parser = subparsers.add_parser(
        "rank",
        help="Rank posts with the feed ranking formula",
    )
    rank_parser.add_argument(
        "posts_file",
        help="Path to JSON with posts (list or {posts:[...]})",
    )
    rank_parser.add_argument(
        "--quality-weighted",
        action="store_true",
        help="Use contributor-quality weighted engagement counts",
    )
    rank_parser.add_argument(
        "--limit", "-n",
        type=int,
        default=50,
        help="Maximum number of posts to output (default: 50)",
    )
    rank_parser.add_argument(
        "--output-json",
        help="Write ranking breakdowns to this path",
    )
    rank_parser.set_defaults(func=cmd_rank)

    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the Kurral CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        exit_code = args.func(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
