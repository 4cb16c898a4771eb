"""
Services module for odds and injury business logic.

This module organizes services into:
- odds: Provider adapters, line resolution, provider fallback, trending props
- injuries: Injuries feed client, cached team reports, adjustment heuristic
- team_mapping: Team name and abbreviation tables shared by both
"""
