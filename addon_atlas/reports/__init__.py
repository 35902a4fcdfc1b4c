"""
addon_atlas.reports — Outbound reports.

Modules:
    leaderboard — Creator standing, leaderboard excerpt, chunked webhook posts.
"""
