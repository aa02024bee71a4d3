"""Client-held filter state (the ``time`` and ``brawlerSel`` cookies).

Values are advisory: they let the dashboard restore its pickers and are
never read back as filter input. ``-1`` and ``["*"]`` mark "not requested"
on the wire only.
"""
import json
from dataclasses import dataclass
from typing import List, Optional, Tuple
from urllib.parse import quote, unquote

from backend.battlelog.filters import FilterSpec


TIME_COOKIE = "time"
BRAWLER_COOKIE = "brawlerSel"

UNSET_EPOCH = -1
ALL_BRAWLERS = ("*",)


@dataclass(frozen=True)
class ClientState:
    start_time: Optional[int] = None
    stop_time: Optional[int] = None
    brawlers: Optional[Tuple[str, ...]] = None

    @classmethod
    def from_spec(cls, spec: FilterSpec) -> "ClientState":
        return cls(start_time=spec.start_time, stop_time=spec.end_time, brawlers=spec.brawlers)

    def time_payload(self) -> dict:
        return {
            "startTime": UNSET_EPOCH if self.start_time is None else self.start_time,
            "stopTime": UNSET_EPOCH if self.stop_time is None else self.stop_time,
        }

    def brawler_payload(self) -> List[str]:
        return list(ALL_BRAWLERS if self.brawlers is None else self.brawlers)


def _encode(value) -> str:
    # 百分号编码，保证 cookie 值为合法 token
    return quote(json.dumps(value, separators=(",", ":")), safe="")


def _decode(blob: Optional[str]):
    if not blob:
        return None
    try:
        return json.loads(unquote(blob))
    except ValueError:
        return None


def encode_state(state: ClientState) -> Tuple[str, str]:
    """Return the (time, brawlerSel) cookie values."""
    return _encode(state.time_payload()), _encode(state.brawler_payload())


def decode_state(time_blob: Optional[str], brawler_blob: Optional[str]) -> Tuple[ClientState, bool]:
    """Decode cookie values; the flag is False when a default had to be substituted."""
    valid = True
    start = stop = None
    brawlers = None

    payload = _decode(time_blob)
    if isinstance(payload, dict) and isinstance(payload.get("startTime"), int) and isinstance(payload.get("stopTime"), int):
        start = None if payload["startTime"] == UNSET_EPOCH else payload["startTime"]
        stop = None if payload["stopTime"] == UNSET_EPOCH else payload["stopTime"]
    else:
        valid = False

    names = _decode(brawler_blob)
    if isinstance(names, list) and all(isinstance(n, str) for n in names):
        brawlers = None if tuple(names) == ALL_BRAWLERS else tuple(names)
    else:
        valid = False

    return ClientState(start_time=start, stop_time=stop, brawlers=brawlers), valid
