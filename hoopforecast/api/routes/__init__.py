"""
API routes, mounted under /api/v1.

- odds: Player line lookup, quota, trending props
- injuries: Team and matchup reports, injury adjustment
"""
