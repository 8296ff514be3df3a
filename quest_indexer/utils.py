import json
import sys
import time
from typing import Any, Dict

from hexbytes import HexBytes
from web3 import Web3


ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Raw RPC log fields that arrive as hex strings over JSON-RPC.
_LOG_BYTES_FIELDS = ("transactionHash", "blockHash", "data")
_LOG_INT_FIELDS = ("blockNumber", "transactionIndex", "logIndex")


def _log(msg: str) -> None:
    ts = time.strftime("%Y-%m-%d %H:%M:%S", time.gmtime())
    sys.stderr.write(f"[{ts} UTC] {msg}\n")
    sys.stderr.flush()


def _json_default(obj: Any) -> Any:
    # HexBytes is a bytes subclass; both store as lower-case 0x hex.
    if isinstance(obj, (bytes, bytearray)):
        return _hex(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    return str(obj)


def _json_dumps(obj: Any) -> str:
    return json.dumps(obj, default=_json_default, ensure_ascii=True, sort_keys=True)


def _load_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _hex(value: Any) -> str:
    """Lower-case 0x-prefixed hex for bytes-like or hex-string values."""
    if isinstance(value, (bytes, bytearray)):
        text = bytes(value).hex()
    else:
        text = str(value).lower()
    return text if text.startswith("0x") else "0x" + text


def _parse_int(value: Any) -> int:
    """Integer from an int, a decimal string or a 0x quantity."""
    if isinstance(value, str) and value[:2].lower() == "0x":
        return int(value, 16)
    return int(value)


def _normalize_log(log: Dict[str, Any]) -> Dict[str, Any]:
    """Coerce a websocket or HTTP log into the shape ``get_event_data`` expects."""
    out = dict(log)
    for key in _LOG_BYTES_FIELDS:
        if isinstance(out.get(key), str):
            out[key] = HexBytes(out[key])
    out["topics"] = [HexBytes(t) for t in out.get("topics") or []]
    for key in _LOG_INT_FIELDS:
        if key in out:
            out[key] = _parse_int(out[key])
    if isinstance(out.get("address"), str):
        out["address"] = Web3.to_checksum_address(out["address"])
    return out
