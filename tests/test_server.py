import aiohttp
import pytest

from beerus_rpc.api import (
    CALL_EXECUTION_FAILED,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    BeerusApiError,
    RpcError,
)
from beerus_rpc.models import BlockId, BlockTag, EventFilter
from beerus_rpc.server import BeerusRpc

EVENTS_PAGE = {
    "events": [
        {
            "from_address": "0x1",
            "block_hash": "0x2",
            "block_number": 800,
            "transaction_hash": "0x3",
            "data": ["0x4"],
            "keys": ["0x5"],
        }
    ],
    "continuation_token": "1000",
}


class FakeClient:
    def __init__(self, failing=False):
        self.failing = failing
        self.calls = []

    def _answer(self, name, value, *args):
        self.calls.append((name, args))
        if self.failing:
            raise RuntimeError("starknet_lightclient_error")
        return value

    async def ethereum_block_number(self):
        return self._answer("ethereum_block_number", 123)

    async def starknet_l2_to_l1_messages(self, msg_hash):
        return self._answer("starknet_l2_to_l1_messages", 1234, msg_hash)

    async def chain_id(self):
        return self._answer("chain_id", 123)

    async def block_number(self):
        return self._answer("block_number", 19640)

    async def starknet_get_nonce(self, contract_address):
        return self._answer("starknet_get_nonce", 123, contract_address)

    async def get_block_transaction_count(self, block_id):
        return self._answer("get_block_transaction_count", 90, block_id)

    async def block_hash_and_number(self):
        return self._answer("block_hash_and_number", {"block_hash": "0x1e240", "block_number": 123456})

    async def get_class_at(self, block_id, contract_address):
        return self._answer("get_class_at", {"program": ""}, block_id, contract_address)

    async def get_block_with_tx_hashes(self, block_id):
        return self._answer("get_block_with_tx_hashes", {"transactions": []}, block_id)

    async def get_transaction_by_block_id_and_index(self, block_id, index):
        return self._answer("get_transaction_by_block_id_and_index", {"type": "INVOKE"}, block_id, index)

    async def get_block_with_txs(self, block_id):
        return self._answer("get_block_with_txs", {"transactions": []}, block_id)

    async def get_state_update(self, block_id):
        return self._answer("get_state_update", {"new_root": "0x1"}, block_id)

    async def syncing(self):
        return self._answer("syncing", False)

    async def starknet_l1_to_l2_messages(self, msg_hash):
        return self._answer("starknet_l1_to_l2_messages", 1234, msg_hash)

    async def starknet_l1_to_l2_message_nonce(self):
        return self._answer("starknet_l1_to_l2_message_nonce", 1234)

    async def starknet_l1_to_l2_message_cancellations(self, msg_hash):
        return self._answer("starknet_l1_to_l2_message_cancellations", 1234, msg_hash)

    async def get_transaction_receipt(self, tx_hash):
        return self._answer("get_transaction_receipt", {"status": "ACCEPTED_ON_L2"}, tx_hash)

    async def get_class_hash_at(self, block_id, contract_address):
        return self._answer("get_class_hash_at", 1234, block_id, contract_address)

    async def get_class(self, block_id, class_hash):
        return self._answer("get_class", {"program": ""}, block_id, class_hash)

    async def add_deploy_transaction(self, transaction):
        return self._answer("add_deploy_transaction", {"transaction_hash": "0x1"}, transaction)

    async def get_events(self, filter, continuation_token, chunk_size):
        return self._answer("get_events", EVENTS_PAGE, filter, continuation_token, chunk_size)


@pytest.mark.asyncio
async def test_starknet_block_number_ok():
    rpc = BeerusRpc(FakeClient())
    assert await rpc.starknet_block_number() == 19640


@pytest.mark.asyncio
async def test_starknet_block_transaction_count_ok():
    client = FakeClient()
    rpc = BeerusRpc(client)
    assert await rpc.starknet_get_block_transaction_count("tag", "latest") == 90
    assert client.calls == [("get_block_transaction_count", (BlockId.tag(BlockTag.LATEST),))]


@pytest.mark.asyncio
async def test_starknet_error_response_block_not_found():
    rpc = BeerusRpc(FakeClient(failing=True))
    with pytest.raises(RpcError) as info:
        await rpc.starknet_get_block_with_tx_hashes("number", "22050")
    assert info.value.code == int(BeerusApiError.BLOCK_NOT_FOUND)
    assert info.value.message == str(BeerusApiError.BLOCK_NOT_FOUND)


@pytest.mark.asyncio
async def test_get_events():
    client = FakeClient()
    rpc = BeerusRpc(client)
    flt = EventFilter(from_block=BlockId.number(800), to_block=BlockId.number(1701))
    page = await rpc.get_events(flt, "1000", 1000)
    assert page["continuation_token"] == EVENTS_PAGE["continuation_token"]
    assert page["events"] == EVENTS_PAGE["events"]
    name, args = client.calls[0]
    assert args == (
        {"from_block": {"block_number": 800}, "to_block": {"block_number": 1701}},
        "1000",
        1000,
    )


@pytest.mark.asyncio
async def test_ethereum_block_number_error_maps_to_block_not_found():
    rpc = BeerusRpc(FakeClient(failing=True))
    with pytest.raises(RpcError) as info:
        await rpc.ethereum_block_number()
    assert info.value.code == 24


@pytest.mark.asyncio
async def test_chain_id_and_nonce_are_decimal_strings():
    rpc = BeerusRpc(FakeClient())
    assert await rpc.starknet_chain_id() == "123"
    assert await rpc.starknet_get_nonce("0x123") == "123"


@pytest.mark.asyncio
async def test_transaction_by_index_invalid_index():
    rpc = BeerusRpc(FakeClient())
    with pytest.raises(RpcError) as info:
        await rpc.starknet_get_transaction_by_block_id_and_index("number", "123", "abc")
    assert info.value.code == INVALID_PARAMS
    assert info.value.message == "invalid digit found in string"


@pytest.mark.asyncio
async def test_transaction_by_index_client_failure():
    rpc = BeerusRpc(FakeClient(failing=True))
    with pytest.raises(RpcError) as info:
        await rpc.starknet_get_transaction_by_block_id_and_index("number", "123", "0")
    assert info.value.code == CALL_EXECUTION_FAILED
    assert info.value.message == "starknet_lightclient_error"


@pytest.mark.asyncio
async def test_get_class_invalid_hash():
    rpc = BeerusRpc(FakeClient())
    with pytest.raises(RpcError) as info:
        await rpc.starknet_get_class("number", "123", "INVALID")
    assert info.value.code == INVALID_PARAMS
    assert info.value.message == "invalid character"


@pytest.mark.asyncio
async def test_get_block_with_txs_invalid_tag():
    rpc = BeerusRpc(FakeClient())
    with pytest.raises(RpcError) as info:
        await rpc.starknet_get_block_with_txs("tag", "nonvalid")
    assert info.value.message == "Invalid Tag"


@pytest.mark.asyncio
async def test_add_deploy_transaction_parses_inputs():
    client = FakeClient()
    rpc = BeerusRpc(client)
    result = await rpc.starknet_add_deploy_transaction('{"program": []}', "10", "0", ["10"])
    assert result == {"transaction_hash": "0x1"}
    name, (transaction,) = client.calls[0]
    assert transaction == {
        "contract_class": {"program": []},
        "version": 10,
        "contract_address_salt": 0,
        "constructor_calldata": [10],
    }


@pytest.mark.asyncio
async def test_add_deploy_transaction_bad_class_raises():
    rpc = BeerusRpc(FakeClient())
    with pytest.raises(ValueError):
        await rpc.starknet_add_deploy_transaction("not json", "10", "0", [])


@pytest.mark.asyncio
async def test_handle_request_block_number():
    rpc = BeerusRpc(FakeClient())
    response = await rpc.handle_request(
        {"jsonrpc": "2.0", "id": 1, "method": "starknet_blockNumber", "params": []}
    )
    assert response == {"jsonrpc": "2.0", "id": 1, "result": 19640}


@pytest.mark.asyncio
async def test_handle_request_named_params():
    rpc = BeerusRpc(FakeClient())
    response = await rpc.handle_request(
        {
            "jsonrpc": "2.0",
            "id": 7,
            "method": "starknet_getBlockTransactionCount",
            "params": {"block_id_type": "tag", "block_id": "latest"},
        }
    )
    assert response["result"] == 90


@pytest.mark.asyncio
async def test_handle_request_get_events_positional():
    rpc = BeerusRpc(FakeClient())
    response = await rpc.handle_request(
        {
            "jsonrpc": "2.0",
            "id": 2,
            "method": "starknet_getEvents",
            "params": [{"from_block": {"Number": 800}, "to_block": {"Number": 1701}}, "1000", 1000],
        }
    )
    assert response["result"] == EVENTS_PAGE


@pytest.mark.asyncio
async def test_handle_request_encodes_u256_as_hex():
    rpc = BeerusRpc(FakeClient())
    response = await rpc.handle_request(
        {"jsonrpc": "2.0", "id": 3, "method": "starknet_l1_to_l2_message_nonce"}
    )
    assert response["result"] == "0x4d2"


@pytest.mark.asyncio
async def test_handle_request_block_not_found_error():
    rpc = BeerusRpc(FakeClient(failing=True))
    response = await rpc.handle_request(
        {"jsonrpc": "2.0", "id": 4, "method": "starknet_getBlockWithTxHashes", "params": ["number", "22050"]}
    )
    assert response["error"] == {"code": 24, "message": "Block not found"}


@pytest.mark.asyncio
async def test_handle_request_unknown_method():
    rpc = BeerusRpc(FakeClient())
    response = await rpc.handle_request({"jsonrpc": "2.0", "id": 5, "method": "nope"})
    assert response["error"]["code"] == METHOD_NOT_FOUND


@pytest.mark.asyncio
async def test_handle_request_missing_params():
    rpc = BeerusRpc(FakeClient())
    response = await rpc.handle_request(
        {"jsonrpc": "2.0", "id": 6, "method": "getClass", "params": ["number"]}
    )
    assert response["error"]["code"] == INVALID_PARAMS


@pytest.mark.asyncio
async def test_handle_request_unexpected_failure_is_internal_error():
    rpc = BeerusRpc(FakeClient(failing=True))
    response = await rpc.handle_request({"jsonrpc": "2.0", "id": 8, "method": "starknet_chainId"})
    assert response["error"]["code"] == INTERNAL_ERROR


@pytest.mark.asyncio
async def test_run_requires_address():
    rpc = BeerusRpc(FakeClient())
    with pytest.raises(ValueError):
        await rpc.run()


@pytest.mark.asyncio
async def test_http_server_round_trip():
    rpc = BeerusRpc(FakeClient(), "127.0.0.1:0")
    (host, port), runner = await rpc.run()
    try:
        async with aiohttp.ClientSession() as session:
            async with session.post(
                f"http://{host}:{port}/",
                json={"jsonrpc": "2.0", "id": 1, "method": "starknet_blockNumber", "params": []},
            ) as resp:
                body = await resp.json()
            async with session.post(f"http://{host}:{port}/", data="{broken") as resp:
                broken = await resp.json()
    finally:
        await runner.cleanup()
    assert body == {"jsonrpc": "2.0", "id": 1, "result": 19640}
    assert broken["error"]["code"] == PARSE_ERROR