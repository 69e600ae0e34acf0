"""
QBot - Services Package
=======================

Backend services: persistence, the Roblox API client, rank promotion and
role synchronization, and the audit log.

Import submodules directly (e.g. ``src.services.ranking.promotion``);
this package keeps no eager imports so low-level modules can depend on
``src.services.roblox.errors`` without pulling in the whole bot.
"""
