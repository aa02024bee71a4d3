from urllib.parse import unquote
import json

from backend.battlelog.client_state import ClientState, decode_state, encode_state
from backend.battlelog.filters import parse_filter_params


def test_state_from_requested_window_and_brawlers():
    spec, _ = parse_filter_params({"start_time": "1000", "end_time": "2000", "brawler": '["A","B"]'})
    state = ClientState.from_spec(spec)
    assert state.time_payload() == {"startTime": 1000, "stopTime": 2000}
    assert state.brawler_payload() == ["A", "B"]


def test_state_without_parameters_uses_sentinels():
    spec, _ = parse_filter_params({})
    state = ClientState.from_spec(spec)
    assert state.time_payload() == {"startTime": -1, "stopTime": -1}
    assert state.brawler_payload() == ["*"]


def test_encoded_values_are_plain_json_once_unquoted():
    time_blob, brawler_blob = encode_state(ClientState(start_time=1000, brawlers=("EL PRIMO",)))
    assert json.loads(unquote(time_blob)) == {"startTime": 1000, "stopTime": -1}
    assert json.loads(unquote(brawler_blob)) == ["EL PRIMO"]
    assert '"' not in time_blob and "," not in time_blob


def test_decode_round_trip():
    state = ClientState(start_time=5, stop_time=10, brawlers=("COLT",))
    decoded, valid = decode_state(*encode_state(state))
    assert valid is True
    assert decoded == state


def test_decode_missing_or_malformed_gives_defaults():
    decoded, valid = decode_state(None, "not-json")
    assert valid is False
    assert decoded == ClientState()
    assert decoded.brawler_payload() == ["*"]
