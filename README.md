# beerus_rpc

An asynchronous JSON-RPC 2.0 server for Ethereum and StarkNet queries. Calls
arrive over HTTP, their parameters are checked and converted, and the work is
handed to a light client object that you supply. Results and errors go back
as JSON-RPC responses.

## Installing

Python 3.10 or later is needed. The only runtime dependency is `aiohttp`; the
`test` extra adds `pytest` and `pytest-asyncio`.

## What it does not do

The package contains no light client. It does not connect to an Ethereum or
StarkNet node, verify anything, or read a configuration file, and it has no
command-line program. You provide an object that has the coroutine methods
described by the `LightClient` protocol in `beerus_rpc.server`, and you start
the server from your own code.

## Using it

```python
from beerus_rpc.server import BeerusRpc

rpc = BeerusRpc(client, ("127.0.0.1", 3030))
address, runner = await rpc.run()
...
await runner.cleanup()
```

The address may be a `(host, port)` tuple or a `"host:port"` string. `run()`
starts serving JSON-RPC on `POST /` and returns the bound `(host, port)` and
the `aiohttp` `AppRunner`; call `cleanup()` on the runner to stop. It raises
`ValueError` when no address was given, and an `RpcError` with code 500
("Internal server error") when the socket cannot be bound.

Other entry points:

- `BeerusRpc.make_app()` returns the `aiohttp` application, for mounting or
  serving it yourself.
- `BeerusRpc.handle_request(request)` answers one already decoded JSON-RPC
  request object and returns the response object, without HTTP.
- Every endpoint is an ordinary coroutine method and can be awaited directly:

```python
count = await rpc.starknet_get_block_transaction_count("tag", "latest")
```

Over HTTP, parameters may be given as an array (by position) or as an object
(by name). A JSON array of requests is answered with an array of responses.
A body that is not valid JSON gets a parse error (-32700); an empty array, a
request without `"jsonrpc": "2.0"` or without a string `method` gets an
invalid-request error (-32600); an unknown method gets -32601.

## Methods

| JSON-RPC method                            | `BeerusRpc` method                               | Parameters |
|--------------------------------------------|--------------------------------------------------|------------|
| `ethereum_blockNumber`                     | `ethereum_block_number`                          | none |
| `starknet_l2_to_l1_messages`               | `starknet_l2_to_l1_messages`                     | `msg_hash` |
| `starknet_chainId`                         | `starknet_chain_id`                              | none |
| `starknet_getNonce`                        | `starknet_get_nonce`                             | `contract_address` |
| `starknet_blockNumber`                     | `starknet_block_number`                          | none |
| `starknet_getBlockTransactionCount`        | `starknet_get_block_transaction_count`           | `block_id_type`, `block_id` |
| `starknet_getClassAt`                      | `starknet_get_class_at`                          | `block_id_type`, `block_id`, `contract_address` |
| `starknet_blockHashAndNumber`              | `starknet_block_hash_and_number`                 | none |
| `starknet_getBlockWithTxHashes`            | `starknet_get_block_with_tx_hashes`              | `block_id_type`, `block_id` |
| `starknet_getTransactionByBlockIdAndIndex` | `starknet_get_transaction_by_block_id_and_index` | `block_id_type`, `block_id`, `index` |
| `starknet_getBlockWithTxs`                 | `starknet_get_block_with_txs`                    | `block_id_type`, `block_id` |
| `starknet_getStateUpdate`                  | `starknet_get_state_update`                      | `block_id_type`, `block_id` |
| `starknet_syncing`                         | `starknet_syncing`                               | none |
| `starknet_l1_to_l2_messages`               | `starknet_l1_to_l2_messages`                     | `msg_hash` |
| `starknet_l1_to_l2_message_nonce`          | `starknet_l1_to_l2_message_nonce`                | none |
| `starknet_l1_to_l2_message_cancellations`  | `starknet_l1_to_l2_message_cancellations`        | `msg_hash` |
| `starknet_getTransactionReceipt`           | `starknet_get_transaction_receipt`               | `tx_hash` |
| `starknet_getClassHash`                    | `starknet_get_class_hash`                        | `block_id_type`, `block_id`, `contract_address` |
| `getClass`                                 | `starknet_get_class`                             | `block_id_type`, `block_id`, `class_hash` |
| `starknet_addDeployTransaction`            | `starknet_add_deploy_transaction`                | `contract_class`, `version`, `contract_address_salt`, `constructor_calldata` |
| `starknet_getEvents`                       | `get_events`                                     | `filter`, `continuation_token` (optional), `chunk_size` |

Over JSON-RPC, `msg_hash` is a 0x-prefixed hex string (or an integer) up to
256 bits. The results of the three L1/L2 message methods and of
`starknet_getClassHash` are sent as 0x-prefixed lower-case hex; the chain id
and the nonce come back as decimal strings. Other results are passed through
as the light client returns them.

`contract_class` for a deploy transaction is a JSON document given as a
string, `version` a decimal unsigned 64-bit number, and the salt and calldata
field elements.

## Block ids and field elements

Block arguments come as a pair of strings: a kind (`"hash"`, `"number"` or
`"tag"`) and a value, such as `("tag", "latest")` or `("number", "800")`.
`beerus_rpc.models.parse_block_id` turns the pair into a `BlockId`; an
unknown kind raises `ValueError("Invalid BlockId type")` and a tag other than
`latest` or `pending` raises `ValueError("Invalid Tag")`.

`BlockId` can also be built with `BlockId.hash`, `BlockId.number` and
`BlockId.tag` (a `BlockTag` or its string), read and written in the form
`{"Number": 800}` with `from_json` / `to_json`, and turned into the form
handed to the light client with `to_starknet_block_id`
(`{"block_hash": "0x.."}`, `{"block_number": n}` or `"latest"`).

Field elements are plain integers below the StarkNet prime.
`parse_felt` accepts 0x-prefixed hex or decimal, `parse_felt_hex` accepts hex
with or without the prefix, and `format_felt` writes minimal 0x-prefixed hex.

## Event filters

`beerus_rpc.models.EventFilter` holds the optional `from_block`, `to_block`,
`address` and `keys` of a `starknet_getEvents` call. `EventFilter.from_json`
reads one from request parameters (block ids in the `{"Number": 800}` form,
address and keys as hex strings), `to_json` writes it back, and
`to_starknet_event_filter` produces the dictionary passed to the light
client's `get_events`. Fields that are not set are left out.

## Errors

`beerus_rpc.api.RpcError` is an exception carrying a `code`, a `message` and
optional `data`; `to_dict()` gives the JSON-RPC error object. The codes that
belong to this API are the members of `beerus_rpc.api.BeerusApiError`, whose
`message()` gives the text and `to_rpc_error()` the `RpcError`:

| Code  | Message                                                 |
|-------|---------------------------------------------------------|
| 1     | Failed to write transaction                             |
| 20    | Contract not found                                      |
| 21    | Invalid message selector                                |
| 22    | Invalid call data                                       |
| 24    | Block not found                                         |
| 25    | Transaction hash not found                              |
| 27    | Invalid transaction index in a block                    |
| 28    | Class hash not found                                    |
| 31    | Requested page size is too big                          |
| 32    | There are no blocks                                     |
| 33    | The supplied continuation token is invalid or unknown   |
| 34    | Too many keys provided in a filter                      |
| 40    | Contract error                                          |
| 50    | Invalid contract class                                  |
| 500   | Internal server error                                   |
| 10000 | Too many storage keys requested                         |

How the endpoint methods report failures:

- `ethereum_block_number`, `starknet_block_number` and
  `starknet_get_block_with_tx_hashes` turn any light-client failure into
  "Block not found" (24).
- `starknet_get_transaction_by_block_id_and_index`,
  `starknet_get_block_with_txs` and `starknet_get_class` raise an
  invalid-params error (-32602, from `invalid_params`) for arguments that do
  not parse, and a call failure (-32000, from `call_failed`) carrying the
  light client's message when it fails.
- `starknet_add_deploy_transaction` raises a call failure when the light
  client fails.
- The other methods let parsing errors (`ValueError`, `TypeError`) and
  light-client exceptions propagate.

When requests go through `handle_request`, parameters of the wrong shape are
rejected with -32602 before the method runs, an `RpcError` becomes the
response's error object, and any other exception is logged and answered with
-32603 "Internal error".