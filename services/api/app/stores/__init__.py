"""Data stores for persistence and caching.

Stores handle:
- PostgreSQL: engine, sessions, row-level CRUD for ads
- Redis: caching with TTL policies

No cache-aside or business logic in stores - that belongs in repositories
and services. Stores know nothing about each other.
"""
