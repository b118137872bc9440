from __future__ import annotations

import json

import pytest

from arstream.transport.errors import TransportIOError
from arstream.transport.jsonl import JsonlTransport


def test_lines_are_appended_on_close(tmp_path):
    out = tmp_path / "run" / "messages.jsonl"
    t = JsonlTransport(out, url="ws://10.0.0.5:8765", flush_interval_s=0.01)

    with t:
        t.send_text(json.dumps({"n": 1}))
        t.send_text(json.dumps({"n": 2}))

    lines = out.read_text(encoding="utf-8").splitlines()
    assert [json.loads(x)["n"] for x in lines] == [1, 2]
    assert not t.is_open()


def test_send_after_close_raises(tmp_path):
    t = JsonlTransport(tmp_path / "m.jsonl")
    t.open()
    t.close()
    with pytest.raises(TransportIOError):
        t.send_text("x")


def test_reopen_appends(tmp_path):
    out = tmp_path / "m.jsonl"
    for n in (1, 2):
        t = JsonlTransport(out, flush_interval_s=0.01)
        t.open()
        t.send_text(str(n))
        t.close()
    assert out.read_text(encoding="utf-8").splitlines() == ["1", "2"]
