from typing import Any, Dict

from quest_indexer.utils import _load_json


DEFAULTS: Dict[str, Any] = {
    "rpc_ws": None,
    "rpc_http": None,
    "db_path": "./quests.db",
    "abi_dir": "./abis",
    "start_block": 0,
    "batch_size": 1000,
    "reconnect_delay": 5,
    "health_check_interval": 30,
    "health_check_threshold": 3,
    "contracts": {},
}


def load_config(path: str) -> Dict[str, Any]:
    cfg = _load_json(path)
    if not isinstance(cfg, dict):
        raise ValueError(f"config {path} must be a JSON object")
    for key, value in DEFAULTS.items():
        cfg.setdefault(key, dict(value) if isinstance(value, dict) else value)
    return cfg
