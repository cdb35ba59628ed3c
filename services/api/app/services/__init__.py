"""Business logic services.

Services contain all business logic and are called by routes.
Services accept their dependencies explicitly (repository, metrics, tracer).
"""
