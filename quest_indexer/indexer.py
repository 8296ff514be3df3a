"""Chain log source feeding the projection.

Logs are fetched over HTTP for backfills and over a websocket subscription
while live, decoded against each contract's ABI and handed to the
dispatcher one at a time in ledger order.
"""

import asyncio
import dataclasses
import json
import os
from typing import Any, Dict, List, Optional

from hexbytes import HexBytes
from web3 import Web3
from web3._utils.events import event_abi_to_log_topic, get_event_data
import websockets
from websockets.exceptions import WebSocketException

from quest_indexer.dispatcher import Dispatcher
from quest_indexer.events import Event
from quest_indexer.store import EntityStore
from quest_indexer.utils import _hex, _load_json, _log, _normalize_log

# Connection trouble worth reconnecting over. Anything else, store failures
# included, stops the indexer with the checkpoint left at the last good event.
RETRYABLE = (OSError, asyncio.TimeoutError, WebSocketException)


class EventIndexer:
    def __init__(self, config: Dict[str, Any], w3: Optional[Web3] = None):
        self.config = config
        self.rpc_ws = config.get("rpc_ws")
        self.rpc_http = config.get("rpc_http")
        self.db_path = config.get("db_path", "./quests.db")
        self.abi_dir = config.get("abi_dir", "./abis")
        self.start_block = int(config.get("start_block", 0))
        self.reconnect_delay = int(config.get("reconnect_delay", 5))
        self.batch_size = int(config.get("batch_size", 1000))
        self.health_check_interval = int(config.get("health_check_interval", 30))
        self.health_check_threshold = int(config.get("health_check_threshold", 3))

        if w3 is None and self.rpc_http:
            w3 = Web3(Web3.HTTPProvider(self.rpc_http))
        self.w3_http = w3
        self.contracts: Dict[str, Dict[str, Any]] = {}
        self.contract_addresses: List[str] = []
        self.topic_to_abi: Dict[str, Dict[str, Dict[str, Any]]] = {}

        self.store = EntityStore(self.db_path)
        self.dispatcher: Optional[Dispatcher] = None
        self.db_lock = asyncio.Lock()

        self._block_ts_cache: Dict[int, int] = {}
        self._ws_id = 0

    async def start(self) -> None:
        await self.init_db()
        await self.load_contracts()
        await self.backfill_missed_blocks()
        await asyncio.gather(
            self.subscribe_to_events(),
            self._health_check_loop(),
        )

    async def init_db(self) -> None:
        self.store.init_db()
        self.dispatcher = Dispatcher(self.store)

    @property
    def last_processed_block(self) -> int:
        """Highest block whose logs have all been applied."""
        checkpoint = self.store.checkpoint()
        if checkpoint is None:
            return self.start_block - 1
        block, log_index = checkpoint
        return block if log_index is None else block - 1

    async def load_contracts(self) -> None:
        contracts_cfg = self.config.get("contracts", {})
        if not contracts_cfg:
            raise ValueError("config.contracts is empty")
        if not self.w3_http:
            raise RuntimeError("rpc_http is required for ABI decoding and backfills")

        for name, entry in contracts_cfg.items():
            if isinstance(entry, dict):
                address = entry.get("address")
                deployed_block = entry.get("deployed_block")
                abi_source = entry.get("abi")
            else:
                address = entry
                deployed_block = None
                abi_source = None

            if not address:
                raise ValueError(f"Missing address for contract {name}")
            checksum = Web3.to_checksum_address(address)
            abi = self._load_abi_for_contract(name, abi_source)
            if not abi:
                raise FileNotFoundError(f"ABI not found for {name} (searched in {self.abi_dir})")

            self.contracts[checksum] = {
                "name": name,
                "address": checksum,
                "abi": abi,
                "deployed_block": deployed_block,
            }

        self.contract_addresses = sorted(self.contracts.keys())
        self._build_event_maps()

    def _load_abi_for_contract(self, name: str, abi_source: Optional[Any]) -> Optional[List[Dict[str, Any]]]:
        if isinstance(abi_source, list):
            return abi_source
        if isinstance(abi_source, str):
            abi_path = abi_source
            if os.path.isdir(abi_path):
                abi_path = self._find_abi_file(name, abi_path)
            if abi_path and os.path.exists(abi_path):
                return self._extract_abi(_load_json(abi_path))
            raise FileNotFoundError(f"ABI path not found for {name}: {abi_source}")

        abi_path = self._find_abi_file(name, self.abi_dir)
        if abi_path:
            return self._extract_abi(_load_json(abi_path))
        return None

    @staticmethod
    def _extract_abi(abi_json: Any) -> Optional[List[Dict[str, Any]]]:
        # Hardhat artifacts wrap the ABI; plain ABI files are the list itself.
        if isinstance(abi_json, list):
            return abi_json
        if isinstance(abi_json, dict) and "abi" in abi_json:
            return abi_json.get("abi")
        return None

    @staticmethod
    def _find_abi_file(contract_name: str, abi_dir: str) -> Optional[str]:
        if not abi_dir or not os.path.exists(abi_dir):
            return None
        for filename in (f"{contract_name}.json", f"{contract_name}.abi.json"):
            direct = os.path.join(abi_dir, filename)
            if os.path.exists(direct):
                return direct

        matches: List[str] = []
        for root, _dirs, files in os.walk(abi_dir):
            for filename in files:
                if filename == f"{contract_name}.json":
                    matches.append(os.path.join(root, filename))
        if matches:
            return sorted(matches)[0]
        return None

    def _build_event_maps(self) -> None:
        self.topic_to_abi.clear()
        for address, meta in self.contracts.items():
            abi = meta.get("abi") or []
            topic_map: Dict[str, Dict[str, Any]] = {}
            for event_abi in abi:
                if not isinstance(event_abi, dict) or event_abi.get("type") != "event":
                    continue
                if event_abi.get("anonymous"):
                    continue
                topic_map[_hex(event_abi_to_log_topic(event_abi))] = event_abi
            self.topic_to_abi[address] = topic_map

    def _decode_log(self, log: Dict[str, Any]) -> Optional[Event]:
        """Decode a normalized log into an ``Event``; None if no ABI matches."""
        address = log.get("address")
        topics = log.get("topics") or []
        if not topics:
            return None
        event_abi = self.topic_to_abi.get(address, {}).get(_hex(topics[0]))
        if event_abi is None:
            return None
        try:
            event_data = get_event_data(self.w3_http.codec, event_abi, log)
        except Exception as exc:
            _log(f"WARN: Failed decoding log for {address}: {exc}")
            return None

        return Event(
            name=event_data["event"],
            contract=self.contracts[address]["name"],
            args=dict(event_data["args"]),
            block_number=log.get("blockNumber", 0),
            block_timestamp=0,
            transaction_hash=_hex(log.get("transactionHash") or HexBytes(b"")),
            transaction_index=log.get("transactionIndex", 0),
            log_index=log.get("logIndex", 0),
        )

    async def process_log(self, log: Dict[str, Any]) -> Optional[str]:
        if self.dispatcher is None:
            raise RuntimeError("DB not initialized")
        normalized = _normalize_log(log)
        decoded = self._decode_log(normalized)
        if decoded is None:
            return None
        block_ts = await self._get_block_timestamp(decoded.block_number)
        event = dataclasses.replace(decoded, block_timestamp=block_ts or 0)
        async with self.db_lock:
            return self.dispatcher.dispatch(event)

    async def backfill_missed_blocks(self) -> None:
        if not self.w3_http:
            raise RuntimeError("rpc_http is required for backfills")
        latest = self.w3_http.eth.block_number
        from_block = max(self.last_processed_block + 1, self.start_block)
        if from_block > latest:
            return
        await self.backfill_range(from_block, latest)

    async def backfill_range(self, from_block: int, to_block: int) -> None:
        if not self.w3_http:
            raise RuntimeError("rpc_http is required for backfills")
        current = from_block
        batch_size = self.batch_size

        while current <= to_block:
            batch_to = min(current + batch_size - 1, to_block)
            try:
                logs = self.w3_http.eth.get_logs(
                    {
                        "fromBlock": current,
                        "toBlock": batch_to,
                        "address": self.contract_addresses,
                    }
                )
            except ValueError as exc:
                msg = str(exc).lower()
                if batch_size <= 1:
                    raise
                if "query returned more than" in msg or "too many" in msg:
                    batch_size = max(batch_size // 2, 1)
                    _log(
                        f"WARN: get_logs too large ({current}-{batch_to}), reducing batch size to {batch_size}"
                    )
                    continue
                raise
            logs = sorted(
                (_normalize_log(log) for log in logs),
                key=lambda x: (x.get("blockNumber", 0), x.get("transactionIndex", 0), x.get("logIndex", 0)),
            )
            for log in logs:
                await self.process_log(log)
            batch_ts = await self._get_block_timestamp(batch_to)
            async with self.db_lock:
                self.dispatcher.complete_block(batch_to, batch_ts)
            _log(f"Backfilled blocks {current}-{batch_to} ({len(logs)} logs)")
            current = batch_to + 1

    async def subscribe_to_events(self) -> None:
        if not self.rpc_ws:
            raise RuntimeError("rpc_ws is required for websocket subscription")

        backoff = max(self.reconnect_delay, 1)
        max_backoff = 60

        while True:
            try:
                await self.backfill_missed_blocks()
                async with websockets.connect(self.rpc_ws, ping_interval=20, ping_timeout=20) as ws:
                    _log("Websocket connected, subscribing to logs...")
                    sub_id = await self._ws_subscribe(ws)
                    _log(f"Subscribed: {sub_id}")
                    backoff = max(self.reconnect_delay, 1)

                    async for message in ws:
                        payload = json.loads(message)
                        if payload.get("method") == "eth_subscription":
                            log = payload.get("params", {}).get("result")
                            if log:
                                await self._handle_ws_log(log)
                        elif payload.get("id") is not None and payload.get("error"):
                            _log(f"WS error: {payload}")
            except RETRYABLE as exc:
                _log(f"Websocket error: {exc}")
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, max_backoff)

    async def _ws_subscribe(self, ws: Any) -> str:
        self._ws_id += 1
        req_id = self._ws_id
        payload = {
            "jsonrpc": "2.0",
            "id": req_id,
            "method": "eth_subscribe",
            "params": ["logs", {"address": self.contract_addresses}],
        }
        await ws.send(json.dumps(payload))

        while True:
            message = await ws.recv()
            data = json.loads(message)
            if data.get("id") == req_id:
                if "result" in data:
                    return data["result"]
                raise ConnectionError(f"Subscribe failed: {data}")
            if data.get("method") == "eth_subscription":
                log = data.get("params", {}).get("result")
                if log:
                    await self._handle_ws_log(log)

    async def _handle_ws_log(self, log: Dict[str, Any]) -> None:
        normalized = _normalize_log(log)
        if normalized.get("removed"):
            # The projection is append-only; reorged logs are reported, not undone.
            _log(
                f"WARN: removed log {_hex(normalized.get('transactionHash') or b'')}"
                f"/{normalized.get('logIndex')} ignored"
            )
            return

        block_number = normalized.get("blockNumber")
        if block_number is not None and block_number > self.last_processed_block + 1:
            await self.backfill_range(self.last_processed_block + 1, block_number - 1)

        await self.process_log(normalized)

    async def _get_block_timestamp(self, block_number: Optional[int]) -> Optional[int]:
        if block_number is None:
            return None
        if block_number in self._block_ts_cache:
            return self._block_ts_cache[block_number]
        block = self.w3_http.eth.get_block(block_number)
        ts = block.get("timestamp")
        self._block_ts_cache[block_number] = ts
        return ts

    async def _health_check_loop(self) -> None:
        while True:
            await asyncio.sleep(self.health_check_interval)
            try:
                if not self.w3_http:
                    continue
                latest = self.w3_http.eth.block_number
                if latest > self.last_processed_block + self.health_check_threshold:
                    await self.backfill_missed_blocks()
            except (OSError, ValueError) as exc:
                _log(f"Health check error: {exc}")
