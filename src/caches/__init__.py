"""
QBot - Caches Module
====================

Expiring caches shared by the Roblox client and command cooldowns.
"""

from src.caches.ttl_cache import TTLCache, CooldownTracker

__all__ = [
    "TTLCache",
    "CooldownTracker",
]
