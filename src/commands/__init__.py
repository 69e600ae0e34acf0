"""
QBot - Slash Commands Package
=============================

Available Commands:
- /promotions check|execute|view - XP promotion workflow
- /binds add|remove|view - Rank range -> Discord role bindings
- /update - Sync roles and nickname with the linked Roblox account
- /xp add|remove|view, /removeuser - XP management
- /link, /unlink, /nickname-format - Account links and nickname template
"""

from src.commands.promotions import PromotionsCog
from src.commands.binds import BindsCog
from src.commands.update import UpdateCog
from src.commands.xp import XpCog
from src.commands.links import LinksCog

__all__ = [
    "PromotionsCog",
    "BindsCog",
    "UpdateCog",
    "XpCog",
    "LinksCog",
]
