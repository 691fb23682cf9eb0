"""ANNA personal-assistant memory: fact extraction, memory store and sync client."""

__version__ = "1.0.0"
