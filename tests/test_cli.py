import json

import pytest

from liuyao.engine import MSG_LINE_COUNT
from liuyao.run import build_parser, main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("LIUYAO_TIMEZONE", "LIUYAO_SOLAR_TERMS", "LIUYAO_LONGITUDE", "LIUYAO_LOG_LEVEL",
                 "LIUYAO_EPHE_PATH"):
        monkeypatch.delenv(name, raising=False)


def run(capsys, *argv):
    status = main(list(argv))
    captured = capsys.readouterr()
    return status, captured.out, captured.err


def test_manual_lines(capsys):
    status, out, _ = run(capsys, "--lines", "777777", "--timestamp", "2024-03-15T10:30",
                         "--category", "career")
    assert status == 0
    data = json.loads(out)
    assert data["primary"]["name"] == "乾为天"
    assert data["calendar"]["pillars"]["day"]["combined"] == "戊寅"
    assert data["interpretation"]["advice_technical"] == "宜观望等待"


def test_rejected_input_exits_with_two(capsys):
    status, out, err = run(capsys, "--lines", "77777", "--timestamp", "2024-03-15T10:30",
                           "--category", "career")
    assert status == 2
    assert out == ""
    assert MSG_LINE_COUNT in err


def test_missing_category_is_reported(capsys):
    status, _, err = run(capsys, "--lines", "777777", "--timestamp", "2024-03-15T10:30")
    assert status == 2
    assert "必须选择问事类别" in err


def test_encode_then_replay(capsys):
    status, out, _ = run(capsys, "--lines", "688777", "--timestamp", "2024-03-15T10:30",
                         "--category", "study", "--encode")
    assert status == 0
    code = out.strip()

    status, out, _ = run(capsys, "--share-code", code)
    assert status == 0
    data = json.loads(out)
    assert data["primary"]["name"] == "天地否"
    assert data["changed"]["name"] == "天雷无妄"
    assert data["input"]["category"] == "study"


def test_bad_share_code(capsys):
    status, _, err = run(capsys, "--share-code", "garbage")
    assert status == 2
    assert "分享码无效" in err


def test_time_cast(capsys):
    status, out, _ = run(capsys, "--time-cast", "--timestamp", "2024-03-15T10:30", "--category", "other")
    assert status == 0
    data = json.loads(out)
    assert data["primary"]["name"] == "地水师"
    assert data["input"]["method"] == "time"


def test_source_options_are_exclusive():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--lines", "777777", "--coins"])


def test_ephemeris_path_is_set_once_at_start_up(capsys, monkeypatch):
    calls = []
    monkeypatch.setenv("LIUYAO_EPHE_PATH", "/tmp/liuyao-ephe")
    monkeypatch.setattr("liuyao.run.configure_ephemeris", calls.append)
    status, _, _ = run(capsys, "--lines", "777777", "--timestamp", "2024-03-15T10:30",
                       "--category", "career")
    assert status == 0
    assert calls == ["/tmp/liuyao-ephe"]
