import json
from typer.testing import CliRunner
from blinkgate.cli import app

def json_lines(text):
    return [json.loads(l) for l in text.splitlines() if l.startswith("{")]

def test_replay_counts_blinks(tmp_path):
    recs = [{"ear": 0.30}]*21 + [{"ear": 0.10}, {"ear": 0.10}, {"ear": 0.31}, {"face": None}]
    p = tmp_path / "stream.jsonl"
    p.write_text("\n".join(json.dumps(r) for r in recs) + "\n")
    res = CliRunner().invoke(app, ["replay", str(p)])
    assert res.exit_code == 0, res.output
    lines = json_lines(res.stdout)
    blinks = [l for l in lines if l.get("type") == "blink"]
    assert len(blinks) == 1 and blinks[0]["status"]["blink_count"] == 1
    assert lines[-1]["frames"] == 25 and lines[-1]["blinks"] == 1

def test_replay_rejects_bad_json(tmp_path):
    p = tmp_path / "bad.jsonl"; p.write_text("{not json}\n")
    res = CliRunner().invoke(app, ["replay", str(p)])
    assert res.exit_code == 2

def test_replay_rejects_bad_ear_value(tmp_path):
    p = tmp_path / "bad.jsonl"; p.write_text('{"ear": 0.3}\n{"ear": "open"}\n')
    res = CliRunner().invoke(app, ["replay", str(p)])
    assert res.exit_code == 2
    assert res.exception is None or isinstance(res.exception, SystemExit)

def test_replay_rejects_short_landmarks(tmp_path):
    p = tmp_path / "short.jsonl"; p.write_text(json.dumps({"landmarks": [[0.1, 0.2]]*10}) + "\n")
    res = CliRunner().invoke(app, ["replay", str(p)])
    assert res.exit_code == 2
    assert res.exception is None or isinstance(res.exception, SystemExit)
