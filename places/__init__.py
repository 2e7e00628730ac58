"""
Places: catalog records and geospatial ranking

- Proximity ranking of places around a reference place (haversine, km)
- Bilingual catalog search and province filter
- Record-store adapters: in-memory and PostgREST (Supabase) over HTTP
"""
from .catalog import filter_places, provinces
from .ranker import rank_nearby

__all__ = ["filter_places", "provinces", "rank_nearby"]
