from .blocklist import BlocklistPort
from .config_store import ConfigStorePort
from .content_store import ContentStorePort
from .grabber import GrabberPort
from .pending_releases import PendingReleasePort
from .release_evaluator import ReleaseEvaluatorPort
from .search_gateway import ProviderHealthPort, SearchGatewayPort
from .search_provider import SearchProviderPort
from .task_history import TaskHistoryPort

__all__ = [
    "BlocklistPort",
    "ConfigStorePort",
    "ContentStorePort",
    "GrabberPort",
    "PendingReleasePort",
    "ProviderHealthPort",
    "ReleaseEvaluatorPort",
    "SearchGatewayPort",
    "SearchProviderPort",
    "TaskHistoryPort",
]
