"""
models/__init__.py
------------------
Re-export all models so create_tables.py (and Alembic, if added) can import
Base and discover all tables via a single import:

    from dealerdesk.models import Base
"""

from dealerdesk.db.base import Base
from dealerdesk.models.company import Company
from dealerdesk.models.dealer import Dealer
from dealerdesk.models.user import User

__all__ = ["Base", "Company", "Dealer", "User"]
