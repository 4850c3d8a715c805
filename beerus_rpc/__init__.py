"""JSON-RPC server that forwards Ethereum and StarkNet queries to a light client."""

__version__ = "0.1.0"
__all__ = ["api", "models", "server"]