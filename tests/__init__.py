"""
Travel Directory Core Test Suite

Structure:
- unit/: Unit tests for individual components (geo, ranking, media lifecycle, API)
"""
