from .client import SolanaRpcClient

__all__ = ["SolanaRpcClient"]
