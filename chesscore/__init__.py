"""Chess positions, Zobrist hashing, move rules, score helpers and search data types."""

__version__ = "0.1.0"
__all__ = ["core", "zobrist", "position", "rules", "score", "searchtools"]