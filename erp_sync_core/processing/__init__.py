from .marketplace import detect_marketplace
from .upsert_engine import UpsertEngine

__all__ = ["UpsertEngine", "detect_marketplace"]
