from photosharing.caching.memory_cache import CacheService, MemoryCacheService

__all__ = ["CacheService", "MemoryCacheService"]
