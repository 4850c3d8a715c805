"""JSON-RPC error types used by the Beerus API."""

from __future__ import annotations

import enum
from typing import Any

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
CALL_EXECUTION_FAILED = -32000


class RpcError(Exception):
    """A JSON-RPC error object raised as an exception."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        """Return the error object as it appears in a JSON-RPC response."""
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error

    def __repr__(self) -> str:
        return f"RpcError(code={self.code!r}, message={self.message!r}, data={self.data!r})"


class BeerusApiError(enum.IntEnum):
    """Application errors with their JSON-RPC codes."""

    FAILED_TO_RECEIVE_TXN = 1
    CONTRACT_NOT_FOUND = 20
    INVALID_MESSAGE_SELECTOR = 21
    INVALID_CALL_DATA = 22
    BLOCK_NOT_FOUND = 24
    TXN_HASH_NOT_FOUND = 25
    INVALID_TXN_INDEX = 27
    CLASS_HASH_NOT_FOUND = 28
    PAGE_SIZE_TOO_BIG = 31
    NO_BLOCKS = 32
    INVALID_CONTINUATION_TOKEN = 33
    CONTRACT_ERROR = 40
    INVALID_CONTRACT_CLASS = 50
    PROOF_LIMIT_EXCEEDED = 10000
    TOO_MANY_KEYS_IN_FILTER = 34
    INTERNAL_SERVER_ERROR = 500

    def message(self) -> str:
        """Human-readable description of the error."""
        return _MESSAGES[self]

    def __str__(self) -> str:
        return self.message()

    def to_rpc_error(self) -> RpcError:
        """Build the JSON-RPC error carrying this code and message."""
        return RpcError(int(self), self.message())


_MESSAGES = {
    BeerusApiError.FAILED_TO_RECEIVE_TXN: "Failed to write transaction",
    BeerusApiError.CONTRACT_NOT_FOUND: "Contract not found",
    BeerusApiError.INVALID_MESSAGE_SELECTOR: "Invalid message selector",
    BeerusApiError.INVALID_CALL_DATA: "Invalid call data",
    BeerusApiError.BLOCK_NOT_FOUND: "Block not found",
    BeerusApiError.TXN_HASH_NOT_FOUND: "Transaction hash not found",
    BeerusApiError.INVALID_TXN_INDEX: "Invalid transaction index in a block",
    BeerusApiError.CLASS_HASH_NOT_FOUND: "Class hash not found",
    BeerusApiError.PAGE_SIZE_TOO_BIG: "Requested page size is too big",
    BeerusApiError.NO_BLOCKS: "There are no blocks",
    BeerusApiError.INVALID_CONTINUATION_TOKEN: (
        "The supplied continuation token is invalid or unknown"
    ),
    BeerusApiError.CONTRACT_ERROR: "Contract error",
    BeerusApiError.INVALID_CONTRACT_CLASS: "Invalid contract class",
    BeerusApiError.PROOF_LIMIT_EXCEEDED: "Too many storage keys requested",
    BeerusApiError.TOO_MANY_KEYS_IN_FILTER: "Too many keys provided in a filter",
    BeerusApiError.INTERNAL_SERVER_ERROR: "Internal server error",
}


def invalid_params(message: str) -> RpcError:
    """Error for parameters that could not be parsed."""
    return RpcError(INVALID_PARAMS, message)


def call_failed(message: str) -> RpcError:
    """Error for a call whose execution failed."""
    return RpcError(CALL_EXECUTION_FAILED, message)