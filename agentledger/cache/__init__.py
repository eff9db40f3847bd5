from .aggregation_cache import AggregationCache, AggregationKey

__all__ = ["AggregationCache", "AggregationKey"]
