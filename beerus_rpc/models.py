"""Block identifiers, event filters and field-element helpers."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Any

FIELD_PRIME = 2**251 + 17 * 2**192 + 1
U64_MAX = 2**64 - 1

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")
_DEC_DIGITS = re.compile(r"[0-9]+")
_U64_TEXT = re.compile(r"\+?[0-9]+")


def _check_felt(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError("field element must be an integer")
    if not 0 <= value < FIELD_PRIME:
        raise ValueError("number out of range")
    return value


def _check_u64(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError("block number must be an integer")
    if not 0 <= value <= U64_MAX:
        raise ValueError("number too large to fit in target type")
    return value


def _parse_u64(text: str) -> int:
    """Parse an unsigned 64-bit decimal integer."""
    if not isinstance(text, str):
        raise TypeError("expected a string")
    if not text:
        raise ValueError("cannot parse integer from empty string")
    if not _U64_TEXT.fullmatch(text):
        raise ValueError("invalid digit found in string")
    value = int(text)
    if value > U64_MAX:
        raise ValueError("number too large to fit in target type")
    return value


def parse_felt_hex(text: str) -> int:
    """Parse a big-endian hex field element, with or without a 0x prefix."""
    if not isinstance(text, str):
        raise TypeError("expected a string")
    digits = text.removeprefix("0x")
    if not _HEX_DIGITS.fullmatch(digits):
        raise ValueError("invalid character")
    return _check_felt(int(digits, 16))


def parse_felt(text: str) -> int:
    """Parse a field element given in hex (0x-prefixed) or decimal."""
    if not isinstance(text, str):
        raise TypeError("expected a string")
    if text.startswith("0x"):
        return parse_felt_hex(text)
    if not _DEC_DIGITS.fullmatch(text):
        raise ValueError("invalid character")
    return _check_felt(int(text))


def format_felt(value: int) -> str:
    """Render a field element as minimal 0x-prefixed lower-case hex."""
    return f"0x{value:x}"


class BlockTag(enum.Enum):
    """Symbolic block references."""

    LATEST = "latest"
    PENDING = "pending"


_KINDS = ("hash", "number", "tag")


@dataclass(frozen=True)
class BlockId:
    """A block referenced by hash, number or tag."""

    kind: str
    value: Any

    def __post_init__(self) -> None:
        if self.kind == "hash":
            _check_felt(self.value)
        elif self.kind == "number":
            _check_u64(self.value)
        elif self.kind == "tag":
            if not isinstance(self.value, BlockTag):
                raise TypeError("tag must be a BlockTag")
        else:
            raise ValueError(f"unknown block id kind {self.kind!r}")

    @classmethod
    def hash(cls, value: int) -> BlockId:
        return cls("hash", value)

    @classmethod
    def number(cls, value: int) -> BlockId:
        return cls("number", value)

    @classmethod
    def tag(cls, value: BlockTag | str) -> BlockId:
        return cls("tag", BlockTag(value))

    @classmethod
    def from_json(cls, data: Any) -> BlockId:
        """Read the externally tagged form, e.g. {"Number": 800}."""
        if not isinstance(data, dict) or len(data) != 1:
            raise ValueError("block id must be an object with exactly one key")
        ((variant, raw),) = data.items()
        if variant == "Hash":
            return cls.hash(parse_felt(raw))
        if variant == "Number":
            return cls.number(raw)
        if variant == "Tag":
            if not isinstance(raw, str):
                raise TypeError("tag must be a string")
            return cls.tag(raw)
        raise ValueError(f"unknown block id variant {variant!r}")

    def to_json(self) -> dict[str, Any]:
        if self.kind == "hash":
            return {"Hash": format_felt(self.value)}
        if self.kind == "number":
            return {"Number": self.value}
        return {"Tag": self.value.value}

    def to_starknet_block_id(self) -> dict[str, Any] | str:
        """Return the block id in the Starknet JSON-RPC wire form."""
        if self.kind == "hash":
            return {"block_hash": format_felt(self.value)}
        if self.kind == "number":
            return {"block_number": self.value}
        return self.value.value


@dataclass(frozen=True)
class EventFilter:
    """Criteria for selecting events."""

    from_block: BlockId | None = None
    to_block: BlockId | None = None
    address: int | None = None
    keys: tuple[int, ...] | None = None

    def __post_init__(self) -> None:
        if self.address is not None:
            _check_felt(self.address)
        if self.keys is not None:
            object.__setattr__(self, "keys", tuple(_check_felt(k) for k in self.keys))

    @classmethod
    def from_json(cls, data: Any) -> EventFilter:
        if not isinstance(data, dict):
            raise ValueError("event filter must be an object")

        def block(name: str) -> BlockId | None:
            raw = data.get(name)
            return None if raw is None else BlockId.from_json(raw)

        address = data.get("address")
        keys = data.get("keys")
        if keys is not None and not isinstance(keys, list):
            raise ValueError("keys must be a list")
        return cls(
            from_block=block("from_block"),
            to_block=block("to_block"),
            address=None if address is None else parse_felt_hex(address),
            keys=None if keys is None else tuple(parse_felt_hex(k) for k in keys),
        )

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.from_block is not None:
            out["from_block"] = self.from_block.to_json()
        if self.to_block is not None:
            out["to_block"] = self.to_block.to_json()
        if self.address is not None:
            out["address"] = format_felt(self.address)
        if self.keys is not None:
            out["keys"] = [format_felt(k) for k in self.keys]
        return out

    def to_starknet_event_filter(self) -> dict[str, Any]:
        """Return the filter in the Starknet JSON-RPC wire form."""
        out: dict[str, Any] = {}
        if self.from_block is not None:
            out["from_block"] = self.from_block.to_starknet_block_id()
        if self.to_block is not None:
            out["to_block"] = self.to_block.to_starknet_block_id()
        if self.address is not None:
            out["address"] = format_felt(self.address)
        if self.keys is not None:
            out["keys"] = [format_felt(k) for k in self.keys]
        return out


def parse_block_id(block_id_type: str, block_id: str) -> BlockId:
    """Build a block id from a type name ("hash", "number", "tag") and a value."""
    if block_id_type == "hash":
        return BlockId.hash(parse_felt(block_id))
    if block_id_type == "number":
        return BlockId.number(_parse_u64(block_id))
    if block_id_type == "tag":
        try:
            return BlockId.tag(block_id)
        except ValueError:
            raise ValueError("Invalid Tag") from None
    raise ValueError("Invalid BlockId type")