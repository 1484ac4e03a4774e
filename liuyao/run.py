"""
CLI wrapper for cast().

Usage:
    liuyao --lines 987878 --timestamp 2024-03-15T10:30 --category career
    liuyao --coins --category wealth [--question "..."]
    liuyao --time-cast --timestamp 2024-03-15T10:30 --category other
    liuyao --share-code CODE
    liuyao --lines 987878 --timestamp 2024-03-15T10:30 --category love --encode

Exit status: 0 on success, 2 for rejected input, 1 when the reading
cannot be completed.
"""

import argparse
import json
import logging
import os
import sys
from datetime import datetime

from liuyao.astro_calendar import configure_ephemeris, resolve_timezone
from liuyao.config import SOLAR_TERM_MODES, EngineConfig
from liuyao.engine import CastingInput, cast
from liuyao.errors import ConfigError, InputValidationError, ReadingFailed
from liuyao.focus import QuestionCategory, Relationship
from liuyao.hexagram import cast_by_coin, cast_by_time
from liuyao.share import decode, encode

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="liuyao", description="Cast and interpret a Liuyao hexagram.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--lines", help="six draw digits bottom to top, e.g. 987878")
    source.add_argument("--coins", action="store_true", help="throw three coins six times")
    source.add_argument("--time-cast", dest="time_cast", action="store_true",
                        help="derive the hexagram from the casting time")
    source.add_argument("--share-code", dest="share_code", help="replay a shared casting")

    parser.add_argument("--timestamp", help="ISO 8601 casting time (default: now)")
    parser.add_argument("--category", choices=[c.value for c in QuestionCategory])
    parser.add_argument("--subtype")
    parser.add_argument("--relationship", choices=[r.value for r in Relationship])
    parser.add_argument("--focus", help="familial role to force as focus, e.g. 官鬼 or officer")
    parser.add_argument("--question")
    parser.add_argument("--encode", action="store_true", help="print the share code only")

    parser.add_argument("--solar-terms", dest="solar_terms", choices=SOLAR_TERM_MODES)
    parser.add_argument("--timezone", help="IANA zone name (default Asia/Shanghai)")
    parser.add_argument("--latitude", type=float)
    parser.add_argument("--longitude", type=float)
    parser.add_argument("--log-level", dest="log_level",
                        default=os.environ.get("LIUYAO_LOG_LEVEL", "WARNING"),
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def build_config(args) -> EngineConfig:
    tz_name = args.timezone
    if args.latitude is not None and args.longitude is not None and tz_name is None:
        tz_name = resolve_timezone(args.latitude, args.longitude)
    return EngineConfig.from_env().with_overrides(
        timezone=tz_name,
        solar_terms=args.solar_terms,
        longitude=args.longitude,
    )


def build_input(args, config: EngineConfig) -> CastingInput:
    if args.share_code:
        casting = decode(args.share_code, config)
        if casting is None:
            raise InputValidationError(["分享码无效"])
        return casting

    timestamp = args.timestamp or datetime.now(config.zone).replace(tzinfo=None).isoformat()
    if args.coins:
        lines, method = cast_by_coin(), "coin"
    elif args.time_cast:
        try:
            moment = datetime.fromisoformat(timestamp)
        except ValueError:
            raise InputValidationError([f"起卦时间格式无效：{timestamp!r}"]) from None
        lines, method = cast_by_time(moment, config), "time"
    else:
        lines, method = args.lines, "manual"

    return CastingInput.from_dict({
        "method": method,
        "lines": lines,
        "timestamp": timestamp,
        "category": args.category,
        "subtype": args.subtype,
        "relationship": args.relationship,
        "question": args.question,
        "focus_override": args.focus,
    })


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        config = build_config(args)
        configure_ephemeris(config.ephemeris_path)
        casting = build_input(args, config)
        logger.debug("Config %s, input %s", config, casting.draws)
    except (InputValidationError, ConfigError, ValueError) as exc:
        messages = getattr(exc, "messages", [str(exc)])
        for message in messages:
            print(message, file=sys.stderr)
        return 2

    if args.encode:
        print(encode(casting, config))
        return 0

    try:
        result = cast(casting, config)
    except ReadingFailed as exc:
        print(exc, file=sys.stderr)
        return 1

    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
