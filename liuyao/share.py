"""
Share codes.

A share code is URL-safe base64 over a compact JSON object:

    {"y": "987878", "t": 1710469800000, "c": "career", "m": "coin"}

y = draw digits bottom to top, t = epoch milliseconds, c = category,
m = casting method; "s" (subtype), "r" (relationship) and "q" (question)
are added only when present, and "z": 1 marks a timezone-aware
timestamp. Decoding never raises: a malformed code gives None.
"""

import base64
import binascii
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from liuyao.config import DEFAULT_CONFIG, EngineConfig
from liuyao.engine import CastingInput
from liuyao.errors import InputValidationError

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _epoch_millis(moment: datetime, config: EngineConfig) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=config.zone)
    return (moment - _EPOCH) // timedelta(milliseconds=1)


def _from_epoch_millis(millis: int, config: EngineConfig, aware: bool = False) -> datetime:
    local = (_EPOCH + timedelta(milliseconds=millis)).astimezone(config.zone)
    return local if aware else local.replace(tzinfo=None)


def encode(casting: CastingInput, config: EngineConfig = DEFAULT_CONFIG) -> str:
    payload = {
        "y": casting.draws,
        "t": _epoch_millis(casting.timestamp, config),
        "c": casting.category.value,
        "m": casting.method.value,
    }
    if casting.subtype:
        payload["s"] = casting.subtype
    if casting.relationship:
        payload["r"] = casting.relationship.value
    if casting.question:
        payload["q"] = casting.question
    if casting.timestamp.tzinfo is not None:
        payload["z"] = 1

    raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode(code: str, config: EngineConfig = DEFAULT_CONFIG) -> Optional[CastingInput]:
    """
    Rebuild a casting input from a share code.

    Args:
        code: share code produced by encode()
        config: zone the timestamp is rendered in

    Returns:
        CastingInput with a local timestamp in the configured zone (aware
        when the encoded one was), or None when the code cannot be read
    """
    try:
        padded = code + "=" * (-len(code) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8"))
        return CastingInput.from_dict({
            "lines": str(payload["y"]),
            "timestamp": _from_epoch_millis(int(payload["t"]), config, bool(payload.get("z"))),
            "category": payload["c"],
            "method": payload.get("m"),
            "subtype": payload.get("s"),
            "relationship": payload.get("r"),
            "question": payload.get("q"),
        })
    except (binascii.Error, UnicodeError, ValueError, TypeError, KeyError,
            OverflowError, OSError, InputValidationError) as exc:
        logger.warning("Could not decode share code %r: %s", code, exc)
        return None
