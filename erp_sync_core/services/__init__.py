from .status_service import StatusService
from .sync_orchestrator import SyncOrchestrator
from .token_manager import TokenManager

__all__ = ["StatusService", "SyncOrchestrator", "TokenManager"]
