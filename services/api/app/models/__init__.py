"""SQLAlchemy ORM models.

Models represent database tables:
- ads: Classified-ad listings
"""

from app.models.ad import AdRecord

__all__ = ["AdRecord"]
