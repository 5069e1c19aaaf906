# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Kurral Contributors

import json

import pytest

from kurral_cli.pipeline_cmd import create_parser, main


def _write(tmp_path, name, payload):
    path = tmp_path / name
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def _run(argv):
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


PREDICTED_POST = {
    "id": "p1",
    "authorId": "a1",
    "text": "hello",
    "bookmarkCount": 1,
    "rechirpCount": 0,
    "commentCount": 1,
    "predictedEngagement": {
        "expected_views_7d": 100,
        "expected_bookmarks_7d": 10,
        "expected_rechirps_7d": 5,
        "expected_comments_7d": 8,
    },
}


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        create_parser().parse_args([])


def test_validate_flags_underperformance(tmp_path, capsys):
    path = _write(tmp_path, "post.json", PREDICTED_POST)

    assert _run(["validate", path]) == 0

    out = capsys.readouterr().out
    assert "Post 'p1'" in out
    assert "Flagged for review: True" in out


def test_validate_with_observed_overrides(tmp_path, capsys):
    path = _write(tmp_path, "post.json", PREDICTED_POST)

    assert _run(["validate", path, "--bookmarks", "10", "--rechirps", "5", "--comments", "8"]) == 0

    out = capsys.readouterr().out
    assert "overall error 0.00" in out
    assert "Flagged for review: False" in out


def test_validate_without_prediction(tmp_path, capsys):
    path = _write(tmp_path, "post.json", {"id": "p2", "authorId": "a1"})
    assert _run(["validate", path]) == 1
    assert "no predicted engagement" in capsys.readouterr().err


def test_missing_file(tmp_path, capsys):
    assert _run(["validate", str(tmp_path / "nope.json")]) == 1
    assert "File not found" in capsys.readouterr().err


def test_rank_prints_in_order(tmp_path, capsys):
    posts = {
        "posts": [
            {"id": "quiet", "authorId": "a1", "valueScore": {"total": 0.1}},
            {"id": "loved", "authorId": "a2", "valueScore": {"total": 0.9}, "bookmarkCount": 12},
        ]
    }
    path = _write(tmp_path, "posts.json", posts)

    assert _run(["rank", path]) == 0

    lines = capsys.readouterr().out.strip().splitlines()
    assert "loved" in lines[0]
    assert "highly bookmarked" in lines[0]
    assert "quiet" in lines[1]


def test_rank_writes_json(tmp_path):
    path = _write(tmp_path, "posts.json", [{"id": "only", "authorId": "a1"}])
    out_path = tmp_path / "ranked.json"

    assert _run(["rank", path, "--output-json", str(out_path)]) == 0

    ranked = json.loads(out_path.read_text(encoding="utf-8"))
    assert len(ranked) == 1
    assert ranked[0]["value_scored"] is False


def test_rank_rejects_bad_payload(tmp_path, capsys):
    path = _write(tmp_path, "posts.json", {"nope": 1})
    assert _run(["rank", path]) == 1
    assert "must be a list" in capsys.readouterr().err


def test_run_requires_api_key(tmp_path, monkeypatch, capsys):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    path = _write(tmp_path, "post.json", {"id": "p1", "authorId": "a1", "text": "x"})
    assert _run(["run", path]) == 1
    assert "OPENAI_API_KEY" in capsys.readouterr().err
