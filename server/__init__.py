"""
Travel directory API

- POST /api/assets/delete: signed asset deletion (keeps the API secret server-side)
- GET /places/{id}/nearby: nearest places within the configured radius
- Optional endpoints: /api/ping, /health
"""
