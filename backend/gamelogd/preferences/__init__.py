"""
User preference and recommendation state.

Structure:
- models.py: RatedGame / GameRecommendation / UserPreferences records
- migration.py: legacy liked/disliked lists -> half-star ratings
- store.py: PreferenceStore over the key-value port, with fallback copy
- concurrency.py: read-modify-write strategies (none / keyed lock / CAS)
- reconciler.py: rate / remove / lookup with the one-rating-per-game rule
- recommendation_gate.py: 24h recommendation cache in front of the generator
"""
