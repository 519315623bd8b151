from .details_cache import BusinessDetailCache, BusinessPullResult

__all__ = ["BusinessDetailCache", "BusinessPullResult"]
