from __future__ import annotations

from typing import Any, Iterable, Mapping

from eth_abi import decode
from eth_utils.abi import collapse_if_tuple, event_abi_to_log_topic
from web3 import Web3

EMPTY_DATA = "0x"


def event_topic(signature: str) -> str:
    return Web3.to_hex(Web3.keccak(text=signature)).lower()


def abi_event_topic(entry: Mapping[str, Any]) -> str:
    return Web3.to_hex(event_abi_to_log_topic(dict(entry))).lower()


def find_event(abi: Iterable[Mapping[str, Any]], name: str) -> Mapping[str, Any]:
    for entry in abi:
        if entry.get("type") == "event" and entry.get("name") == name:
            return entry
    raise KeyError(f"Event {name!r} not found in ABI")


def decode_log_data(fragment: Iterable[Mapping[str, Any]], data: str) -> dict[str, Any]:
    """Decode the non-indexed part of a log into a dict keyed by field name.

    Addresses come back lowercased and tuples become nested dicts. Malformed
    data raises ``eth_abi.exceptions.DecodingError``.
    """
    params = list(fragment)
    raw = bytes.fromhex(_strip_prefix(data))
    values = decode([collapse_if_tuple(dict(param)) for param in params], raw)
    return {param["name"]: _named_value(param, value) for param, value in zip(params, values)}


def topic_to_int_string(topic: str) -> str:
    return str(int(topic, 16))


def _named_value(param: Mapping[str, Any], value: Any) -> Any:
    type_str = param["type"]
    if type_str.endswith("]"):
        element = {**param, "type": type_str[: type_str.rindex("[")]}
        return [_named_value(element, item) for item in value]
    if type_str == "tuple":
        return {
            component["name"]: _named_value(component, item)
            for component, item in zip(param["components"], value)
        }
    if type_str == "address":
        return value.lower()
    return value


def _strip_prefix(data: str) -> str:
    return data[2:] if data.startswith("0x") else data
