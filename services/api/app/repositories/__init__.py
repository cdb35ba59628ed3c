"""Repositories: data access with the cache-aside protocol on top of stores."""
