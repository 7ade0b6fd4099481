"""In-memory settlement: token ledger and pool manager"""

from .ledger import TokenLedger
from .pool_manager import PoolManager

__all__ = ["TokenLedger", "PoolManager"]
