"""Request parameter parsing for the battle retrieval endpoint.

Every parameter is parsed on its own: a malformed value leaves that field
unconstrained and never fails the request.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple


logger = logging.getLogger(__name__)

DEFAULT_SORT: Tuple[Tuple[str, int], ...] = (("epoch", -1),)

_INT_RE = re.compile(r'^\s*([+-]?[0-9]+)')
# 存储层 epoch/limit 为有符号 64 位整数
_INT_MIN = -(2 ** 63)
_INT_MAX = 2 ** 63 - 1
_SORT_WORDS = {"asc": 1, "ascending": 1, "desc": -1, "descending": -1}


@dataclass(frozen=True)
class FilterSpec:
    start_time: Optional[int] = None          # epoch 毫秒，含下界
    end_time: Optional[int] = None            # epoch 毫秒，含上界
    ranked: Optional[bool] = None             # True 仅排位 / False 排除排位
    need_player: Optional[bool] = None        # True 需要 player / False 要求 player 为空
    brawlers: Optional[Tuple[str, ...]] = None
    modes: Optional[Tuple[str, ...]] = None
    limit: int = 0                            # 0 表示不限
    projection: Tuple[Tuple[str, int], ...] = ()
    sort: Tuple[Tuple[str, int], ...] = DEFAULT_SORT


def _parse_int(raw: str) -> Optional[int]:
    m = _INT_RE.match(raw)
    if not m:
        return None
    value = int(m.group(1))
    if not _INT_MIN <= value <= _INT_MAX:
        return None
    return value


def _parse_name_list(raw: str) -> Optional[Tuple[str, ...]]:
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        return None
    return tuple(value)


def _parse_projection(raw: str) -> Optional[Tuple[Tuple[str, int], ...]]:
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(value, dict):
        return None
    fields = []
    for key, flag in value.items():
        if isinstance(flag, bool):
            flag = int(flag)
        if flag not in (0, 1) or not isinstance(flag, int):
            return None
        fields.append((key, flag))
    # 除 _id 外不允许同时包含与排除
    flags = {flag for key, flag in fields if key != "_id"}
    if len(flags) > 1:
        return None
    return tuple(fields)


def _parse_sort(raw: str) -> Optional[Tuple[Tuple[str, int], ...]]:
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(value, dict) or not value:
        return None
    order = []
    for key, direction in value.items():
        if isinstance(direction, str):
            direction = _SORT_WORDS.get(direction.strip().lower())
        if isinstance(direction, bool) or direction not in (1, -1):
            return None
        order.append((key, direction))
    return tuple(order)


def parse_filter_params(params: Mapping[str, str]) -> Tuple[FilterSpec, List[str]]:
    """Build a FilterSpec from raw string parameters.

    Returns the spec and the names of the parameters that were present but
    could not be parsed (and were therefore ignored).
    """
    values: Dict[str, Any] = {}
    ignored: List[str] = []

    def _take(name: str, parser, target: str) -> None:
        if name not in params:
            return
        parsed = parser(params[name])
        if parsed is None:
            ignored.append(name)
        else:
            values[target] = parsed

    _take("start_time", _parse_int, "start_time")
    _take("end_time", _parse_int, "end_time")

    if "ranked" in params:
        values["ranked"] = params["ranked"] != "0"
    if "need_player" in params:
        values["need_player"] = params["need_player"] != "0"

    _take("brawler", _parse_name_list, "brawlers")
    _take("mode", _parse_name_list, "modes")

    if "limit" in params:
        limit = _parse_int(params["limit"])
        if limit is None or limit < 0:
            ignored.append("limit")
        else:
            values["limit"] = limit

    _take("project", _parse_projection, "projection")
    _take("sort", _parse_sort, "sort")

    if ignored:
        logger.debug("ignored malformed filter parameters: %s", ", ".join(ignored))
    return FilterSpec(**values), ignored
