from anna.tools.memory_client import LocalCache, MemoryClient
from anna.tools.session import SessionRegistry

__all__ = ["LocalCache", "MemoryClient", "SessionRegistry"]
