from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from conftest import RecordingSink, write_xml
from xmlloader import DEFAULT_URL, LoadMode
from xmlloader.cli import config_from_args, main, parse_args


@pytest.fixture(autouse=True)
def _restore_root_logging():
    # main() replaces the root handlers; put the suite's back afterwards.
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_parse_args_defaults(tmp_path: Path):
    args = parse_args(["--files", str(tmp_path)])
    assert args.mode == LoadMode.FILES
    assert args.paths == [tmp_path]
    assert args.url == DEFAULT_URL
    assert args.jsonl is None

    config = config_from_args(args)
    assert config.roots == (tmp_path,)
    assert config.stop_on_write_error is True
    assert config.write_timeout == 600.0


def test_parse_args_lines_and_options(tmp_path: Path):
    args = parse_args(
        [
            "--lines",
            str(tmp_path / "a.xml"),
            str(tmp_path / "b"),
            "--workers",
            "4",
            "--max-pending",
            "50",
            "--write-timeout",
            "0",
            "--continue-on-write-error",
            "--no-progress",
        ]
    )
    config = config_from_args(args)
    assert config.mode == LoadMode.LINES
    assert len(config.roots) == 2
    assert config.workers == 4
    assert config.max_pending == 50
    assert config.write_timeout is None
    assert config.stop_on_write_error is False
    assert config.show_progress is False


@pytest.mark.parametrize(
    "argv",
    [
        ["--files", "--lines", "x"],
        ["--files"],
        ["x.xml"],
    ],
)
def test_parse_args_rejects_bad_combinations(argv):
    with pytest.raises(SystemExit):
        parse_args(argv)


def test_main_writes_jsonl(xml_tree: Path, tmp_path: Path):
    out = tmp_path / "out.jsonl"
    code = main(["--files", str(xml_tree), "--jsonl", str(out), "--no-progress"])
    assert code == 0

    docs = [json.loads(line) for line in out.read_text(encoding="utf-8").splitlines()]
    assert sorted(d["id"] for d in docs) == ["a", "b", "c", "d", "e"]


def test_main_bad_url_prints_usage(tmp_path: Path, capsys):
    code = main(["--files", str(tmp_path), "--url", "mongodb://localhost:27017/db", "--no-progress"])
    assert code == 1
    err = capsys.readouterr().err
    assert "database and collection" in err
    assert err.count("usage:") == 1


def test_main_reports_failure_once(tmp_path: Path, capsys, monkeypatch):
    write_xml(tmp_path / "in" / "bad.xml", "<a>")
    sink = RecordingSink(max_concurrency=1)
    monkeypatch.setattr("xmlloader.sinks.open_sink", lambda *args, **kwargs: sink)

    code = main(["--files", str(tmp_path / "in"), "--no-progress"])
    assert code == 1
    assert sink.closed

    err = capsys.readouterr().err
    assert "bad.xml" in err
    assert err.count("usage:") == 1
