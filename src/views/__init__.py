"""
QBot - Views Package
====================

Discord UI Views used across the bot.
"""

from .promotions import (
    PromotionView,
    PROMOTE_ALL_ID,
    CHECK_PROMOTIONS_ID,
)

__all__ = [
    "PromotionView",
    "PROMOTE_ALL_ID",
    "CHECK_PROMOTIONS_ID",
]
