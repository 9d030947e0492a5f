"""
Shared, cross-cutting code for the API.

`core/` holds small building blocks the feature packages use (DB pool and
query helpers, environment settings). Config-specific SQL and authorization
logic live in `configs/`.
"""
