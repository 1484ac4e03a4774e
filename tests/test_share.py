import base64
import json
import logging
from datetime import datetime, timedelta, timezone

import pytest

from liuyao.config import EngineConfig
from liuyao.engine import CastingInput, CastingMethod
from liuyao.focus import QuestionCategory, Relationship
from liuyao.share import decode, encode


def make_code(payload):
    raw = json.dumps(payload).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def test_share_code_replays_the_casting():
    casting = CastingInput.from_dict({
        "lines": "987878",
        "timestamp": datetime(2024, 3, 15, 10, 30, 15, 123456),
        "category": "love",
        "method": "coin",
        "relationship": "female",
        "question": "这段感情能否长久？",
    })
    code = encode(casting)
    assert "=" not in code

    replay = decode(code)
    assert replay.draws == "987878"
    assert replay.timestamp == datetime(2024, 3, 15, 10, 30, 15, 123000)
    assert replay.category is QuestionCategory.LOVE
    assert replay.method is CastingMethod.COIN
    assert replay.relationship is Relationship.FEMALE
    assert replay.question == "这段感情能否长久？"
    assert replay.subtype is None


def test_share_code_payload_is_compact_json():
    casting = CastingInput.from_dict({
        "lines": "777777", "timestamp": "2024-03-15T10:30", "category": "career",
    })
    code = encode(casting)
    payload = json.loads(base64.urlsafe_b64decode(code + "=" * (-len(code) % 4)))
    # 2024-03-15 10:30 in Beijing is 02:30 UTC
    assert payload == {"y": "777777", "t": 1710469800000, "c": "career", "m": "manual"}


def test_timestamp_follows_the_configured_zone():
    casting = CastingInput.from_dict({
        "lines": "777777", "timestamp": "2024-03-15T10:30", "category": "career",
    })
    code = encode(casting)
    replay = decode(code, EngineConfig(timezone="Europe/London"))
    assert replay.timestamp == datetime(2024, 3, 15, 2, 30)


def test_aware_timestamp_keeps_its_instant():
    moment = datetime(2024, 3, 15, 2, 30, tzinfo=timezone.utc)
    casting = CastingInput.from_dict({"lines": "777777", "timestamp": moment, "category": "career"})
    code = encode(casting)

    replay = decode(code)
    assert replay.timestamp == moment
    assert replay.timestamp.tzinfo is not None
    assert replay.timestamp.utcoffset() == timedelta(hours=8)
    assert decode(code, EngineConfig(timezone="Europe/London")).timestamp == moment


@pytest.mark.parametrize("code", [
    "",
    "not base64 at all",
    "码",
    make_code({"y": "777777"}),
    make_code({"y": "77", "t": 0, "c": "career"}),
    make_code({"y": "777777", "t": 0, "c": "fortune"}),
    make_code(["777777"]),
])
def test_malformed_codes_give_none(code, caplog):
    with caplog.at_level(logging.WARNING, logger="liuyao.share"):
        assert decode(code) is None
    assert "Could not decode share code" in caplog.text
