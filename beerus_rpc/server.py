"""JSON-RPC server exposing the Beerus light client."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, NamedTuple, Protocol

from aiohttp import web

from .api import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    BeerusApiError,
    RpcError,
    call_failed,
    invalid_params,
)
from .models import (
    BlockId,
    EventFilter,
    _parse_u64,
    format_felt,
    parse_block_id,
    parse_felt,
    parse_felt_hex,
)

logger = logging.getLogger(__name__)

_U256_MAX = 2**256 - 1


class LightClient(Protocol):
    """The light-client operations the RPC server relies on."""

    async def ethereum_block_number(self) -> int:
        """Latest Ethereum block number."""

    async def starknet_l2_to_l1_messages(self, msg_hash: int) -> int:
        """Pending L2-to-L1 message count for a hash."""

    async def chain_id(self) -> int:
        """Starknet chain id."""

    async def block_number(self) -> int:
        """Latest Starknet block number."""

    async def starknet_get_nonce(self, contract_address: int) -> int:
        """Nonce of a contract."""

    async def get_block_transaction_count(self, block_id: BlockId) -> int:
        """Number of transactions in a block."""

    async def block_hash_and_number(self) -> Any:
        """Hash and number of the latest block."""

    async def get_class_at(self, block_id: BlockId, contract_address: int) -> Any:
        """Contract class deployed at an address."""

    async def get_block_with_tx_hashes(self, block_id: BlockId) -> Any:
        """Block with its transaction hashes."""

    async def get_transaction_by_block_id_and_index(self, block_id: BlockId, index: int) -> Any:
        """Transaction at an index within a block."""

    async def get_block_with_txs(self, block_id: BlockId) -> Any:
        """Block with its full transactions."""

    async def get_state_update(self, block_id: BlockId) -> Any:
        """State update of a block."""

    async def syncing(self) -> Any:
        """Sync status of the node."""

    async def starknet_l1_to_l2_messages(self, msg_hash: int) -> int:
        """Pending L1-to-L2 message fee for a hash."""

    async def starknet_l1_to_l2_message_nonce(self) -> int:
        """Current L1-to-L2 message nonce."""

    async def starknet_l1_to_l2_message_cancellations(self, msg_hash: int) -> int:
        """Cancellation time of an L1-to-L2 message."""

    async def get_transaction_receipt(self, tx_hash: int) -> Any:
        """Receipt of a transaction."""

    async def get_class_hash_at(self, block_id: BlockId, contract_address: int) -> int:
        """Class hash of the contract at an address."""

    async def get_class(self, block_id: BlockId, class_hash: int) -> Any:
        """Contract class for a class hash."""

    async def add_deploy_transaction(self, transaction: dict[str, Any]) -> Any:
        """Submit a deploy transaction."""

    async def get_events(
        self, filter: dict[str, Any], continuation_token: str | None, chunk_size: int
    ) -> Any:
        """A page of events matching a filter."""


class BeerusRpc:
    """JSON-RPC front end over a light client."""

    def __init__(self, client: LightClient, address: str | tuple[str, int] | None = None) -> None:
        self.client = client
        self.address = address

    # Ethereum

    async def ethereum_block_number(self) -> int:
        try:
            return await self.client.ethereum_block_number()
        except Exception as exc:
            raise BeerusApiError.BLOCK_NOT_FOUND.to_rpc_error() from exc

    # Starknet

    async def starknet_l2_to_l1_messages(self, msg_hash: int) -> int:
        return await self.client.starknet_l2_to_l1_messages(msg_hash)

    async def starknet_chain_id(self) -> str:
        return str(await self.client.chain_id())

    async def starknet_get_nonce(self, contract_address: str) -> str:
        address = parse_felt_hex(contract_address)
        return str(await self.client.starknet_get_nonce(address))

    async def starknet_block_number(self) -> int:
        try:
            return await self.client.block_number()
        except Exception as exc:
            raise BeerusApiError.BLOCK_NOT_FOUND.to_rpc_error() from exc

    async def starknet_get_block_transaction_count(self, block_id_type: str, block_id: str) -> int:
        block = parse_block_id(block_id_type, block_id)
        return await self.client.get_block_transaction_count(block)

    async def starknet_get_class_at(
        self, block_id_type: str, block_id: str, contract_address: str
    ) -> Any:
        block = parse_block_id(block_id_type, block_id)
        address = parse_felt(contract_address)
        return await self.client.get_class_at(block, address)

    async def starknet_block_hash_and_number(self) -> Any:
        return await self.client.block_hash_and_number()

    async def starknet_get_block_with_tx_hashes(self, block_id_type: str, block_id: str) -> Any:
        block = parse_block_id(block_id_type, block_id)
        try:
            return await self.client.get_block_with_tx_hashes(block)
        except Exception as exc:
            raise BeerusApiError.BLOCK_NOT_FOUND.to_rpc_error() from exc

    async def starknet_get_transaction_by_block_id_and_index(
        self, block_id_type: str, block_id: str, index: str
    ) -> Any:
        try:
            block = parse_block_id(block_id_type, block_id)
            position = _parse_u64(index)
        except (TypeError, ValueError) as exc:
            raise invalid_params(str(exc)) from exc
        try:
            return await self.client.get_transaction_by_block_id_and_index(block, position)
        except Exception as exc:
            raise call_failed(str(exc)) from exc

    async def starknet_get_block_with_txs(self, block_id_type: str, block_id: str) -> Any:
        try:
            block = parse_block_id(block_id_type, block_id)
        except (TypeError, ValueError) as exc:
            raise invalid_params(str(exc)) from exc
        try:
            return await self.client.get_block_with_txs(block)
        except Exception as exc:
            raise call_failed(str(exc)) from exc

    async def starknet_get_state_update(self, block_id_type: str, block_id: str) -> Any:
        block = parse_block_id(block_id_type, block_id)
        return await self.client.get_state_update(block)

    async def starknet_syncing(self) -> Any:
        return await self.client.syncing()

    async def starknet_l1_to_l2_messages(self, msg_hash: int) -> int:
        return await self.client.starknet_l1_to_l2_messages(msg_hash)

    async def starknet_l1_to_l2_message_nonce(self) -> int:
        return await self.client.starknet_l1_to_l2_message_nonce()

    async def starknet_l1_to_l2_message_cancellations(self, msg_hash: int) -> int:
        return await self.client.starknet_l1_to_l2_message_cancellations(msg_hash)

    async def starknet_get_transaction_receipt(self, tx_hash: str) -> Any:
        return await self.client.get_transaction_receipt(parse_felt_hex(tx_hash))

    async def starknet_get_class_hash(
        self, block_id_type: str, block_id: str, contract_address: str
    ) -> int:
        block = parse_block_id(block_id_type, block_id)
        address = parse_felt(contract_address)
        return await self.client.get_class_hash_at(block, address)

    async def starknet_get_class(self, block_id_type: str, block_id: str, class_hash: str) -> Any:
        try:
            block = parse_block_id(block_id_type, block_id)
            class_hash_felt = parse_felt(class_hash)
        except (TypeError, ValueError) as exc:
            raise invalid_params(str(exc)) from exc
        try:
            return await self.client.get_class(block, class_hash_felt)
        except Exception as exc:
            raise call_failed(str(exc)) from exc

    async def starknet_add_deploy_transaction(
        self,
        contract_class: str,
        version: str,
        contract_address_salt: str,
        constructor_calldata: list[str],
    ) -> Any:
        transaction = {
            "contract_class": json.loads(contract_class),
            "version": _parse_u64(version),
            "contract_address_salt": parse_felt(contract_address_salt),
            "constructor_calldata": [parse_felt(item) for item in constructor_calldata],
        }
        try:
            return await self.client.add_deploy_transaction(transaction)
        except Exception as exc:
            raise call_failed(str(exc)) from exc

    async def get_events(
        self, filter: EventFilter, continuation_token: str | None, chunk_size: int
    ) -> Any:
        return await self.client.get_events(
            filter.to_starknet_event_filter(), continuation_token, chunk_size
        )

    # Transport

    async def handle_request(self, request: Any) -> dict[str, Any]:
        """Answer one JSON-RPC request object with a response object."""
        request_id = request.get("id") if isinstance(request, dict) else None
        try:
            if (
                not isinstance(request, dict)
                or request.get("jsonrpc") != "2.0"
                or not isinstance(request.get("method"), str)
            ):
                raise RpcError(INVALID_REQUEST, "Invalid request")
            entry = _METHODS.get(request["method"])
            if entry is None:
                raise RpcError(METHOD_NOT_FOUND, "Method not found")
            args = _bind(entry.params, request.get("params"))
            result = await getattr(self, entry.handler)(*args)
            return {"jsonrpc": "2.0", "id": request_id, "result": entry.encode(result)}
        except RpcError as err:
            return {"jsonrpc": "2.0", "id": request_id, "error": err.to_dict()}
        except Exception:
            logger.exception("request failed")
            error = RpcError(INTERNAL_ERROR, "Internal error")
            return {"jsonrpc": "2.0", "id": request_id, "error": error.to_dict()}

    async def _handle_http(self, request: web.Request) -> web.Response:
        try:
            payload = await request.json()
        except ValueError:
            error = RpcError(PARSE_ERROR, "Parse error")
            return web.json_response({"jsonrpc": "2.0", "id": None, "error": error.to_dict()})
        if isinstance(payload, list):
            if not payload:
                error = RpcError(INVALID_REQUEST, "Invalid request")
                return web.json_response({"jsonrpc": "2.0", "id": None, "error": error.to_dict()})
            return web.json_response([await self.handle_request(item) for item in payload])
        return web.json_response(await self.handle_request(payload))

    def make_app(self) -> web.Application:
        """Build the HTTP application serving JSON-RPC on POST /."""
        app = web.Application()
        app.router.add_post("/", self._handle_http)
        return app

    async def run(self) -> tuple[tuple[str, int], web.AppRunner]:
        """Start serving; return the bound address and the runner that stops it."""
        if self.address is None:
            raise ValueError("no RPC address configured")
        host, port = _split_address(self.address)
        runner = web.AppRunner(self.make_app())
        await runner.setup()
        site = web.TCPSite(runner, host, port)
        try:
            await site.start()
        except OSError as exc:
            await runner.cleanup()
            raise BeerusApiError.INTERNAL_SERVER_ERROR.to_rpc_error() from exc
        bound = runner.addresses[0]
        return (bound[0], bound[1]), runner


def _split_address(address: str | tuple[str, int]) -> tuple[str, int]:
    if isinstance(address, tuple):
        host, port = address
        return host, int(port)
    host, sep, port = address.rpartition(":")
    if not sep or not host:
        raise ValueError(f"invalid address {address!r}")
    return host.strip("[]"), int(port)


def _as_str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError("expected a string")
    return value


def _as_opt_str(value: Any) -> str | None:
    return None if value is None else _as_str(value)


def _as_str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        raise TypeError("expected a list of strings")
    return [_as_str(item) for item in value]


def _as_u64(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < 2**64:
        raise ValueError("expected an unsigned 64-bit integer")
    return value


def _as_u256(value: Any) -> int:
    if isinstance(value, str) and value.startswith("0x"):
        digits = value[2:]
        if not digits or any(c not in "0123456789abcdefABCDEF" for c in digits):
            raise ValueError("invalid hex string")
        number = int(digits, 16)
    elif isinstance(value, int) and not isinstance(value, bool):
        number = value
    else:
        raise ValueError("expected a 0x-prefixed hex string")
    if not 0 <= number <= _U256_MAX:
        raise ValueError("number out of range")
    return number


def _identity(value: Any) -> Any:
    return value


class _Param(NamedTuple):
    name: str
    convert: Callable[[Any], Any]
    optional: bool = False


class _Method(NamedTuple):
    handler: str
    params: tuple[_Param, ...]
    encode: Callable[[Any], Any] = _identity


def _bind(params: tuple[_Param, ...], raw: Any) -> list[Any]:
    if raw is None:
        raw = []
    if isinstance(raw, list):
        if len(raw) > len(params):
            raise invalid_params("too many parameters")
        supplied = dict(zip((p.name for p in params), raw))
    elif isinstance(raw, dict):
        supplied = raw
    else:
        raise invalid_params("parameters must be an array or an object")
    args = []
    for param in params:
        if param.name not in supplied:
            if param.optional:
                args.append(None)
                continue
            raise invalid_params(f"missing parameter {param.name}")
        try:
            args.append(param.convert(supplied[param.name]))
        except (TypeError, ValueError) as exc:
            raise invalid_params(f"invalid parameter {param.name}: {exc}") from exc
    return args


_BLOCK = (_Param("block_id_type", _as_str), _Param("block_id", _as_str))

_METHODS: dict[str, _Method] = {
    "ethereum_blockNumber": _Method("ethereum_block_number", ()),
    "starknet_l2_to_l1_messages": _Method(
        "starknet_l2_to_l1_messages", (_Param("msg_hash", _as_u256),), format_felt
    ),
    "starknet_chainId": _Method("starknet_chain_id", ()),
    "starknet_getNonce": _Method(
        "starknet_get_nonce", (_Param("contract_address", _as_str),)
    ),
    "starknet_blockNumber": _Method("starknet_block_number", ()),
    "starknet_getBlockTransactionCount": _Method(
        "starknet_get_block_transaction_count", _BLOCK
    ),
    "starknet_getClassAt": _Method(
        "starknet_get_class_at", _BLOCK + (_Param("contract_address", _as_str),)
    ),
    "starknet_blockHashAndNumber": _Method("starknet_block_hash_and_number", ()),
    "starknet_getBlockWithTxHashes": _Method("starknet_get_block_with_tx_hashes", _BLOCK),
    "starknet_getTransactionByBlockIdAndIndex": _Method(
        "starknet_get_transaction_by_block_id_and_index", _BLOCK + (_Param("index", _as_str),)
    ),
    "starknet_getBlockWithTxs": _Method("starknet_get_block_with_txs", _BLOCK),
    "starknet_getStateUpdate": _Method("starknet_get_state_update", _BLOCK),
    "starknet_syncing": _Method("starknet_syncing", ()),
    "starknet_l1_to_l2_messages": _Method(
        "starknet_l1_to_l2_messages", (_Param("msg_hash", _as_u256),), format_felt
    ),
    "starknet_l1_to_l2_message_nonce": _Method(
        "starknet_l1_to_l2_message_nonce", (), format_felt
    ),
    "starknet_l1_to_l2_message_cancellations": _Method(
        "starknet_l1_to_l2_message_cancellations", (_Param("msg_hash", _as_u256),), format_felt
    ),
    "starknet_getTransactionReceipt": _Method(
        "starknet_get_transaction_receipt", (_Param("tx_hash", _as_str),)
    ),
    "starknet_getClassHash": _Method(
        "starknet_get_class_hash", _BLOCK + (_Param("contract_address", _as_str),), format_felt
    ),
    "getClass": _Method("starknet_get_class", _BLOCK + (_Param("class_hash", _as_str),)),
    "starknet_addDeployTransaction": _Method(
        "starknet_add_deploy_transaction",
        (
            _Param("contract_class", _as_str),
            _Param("version", _as_str),
            _Param("contract_address_salt", _as_str),
            _Param("constructor_calldata", _as_str_list),
        ),
    ),
    "starknet_getEvents": _Method(
        "get_events",
        (
            _Param("filter", EventFilter.from_json),
            _Param("continuation_token", _as_opt_str, optional=True),
            _Param("chunk_size", _as_u64),
        ),
    ),
}