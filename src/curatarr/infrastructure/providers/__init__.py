from .guarded import GuardedSearchProvider, ProviderPool

__all__ = ["GuardedSearchProvider", "ProviderPool"]
