"""
Player prop odds.

- providers: One adapter per upstream odds source (aggregatorA, aggregatorB, legacyAggregator)
- resolver: Bookmaker-preference ranking of provider candidates
- service: Sequential provider fallback for player line lookups
- trending: Props listed by the most sportsbooks
"""
