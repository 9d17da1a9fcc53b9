"""
Model import hook.

Importing this module registers every SQLAlchemy model on Base.metadata.
"""

from __future__ import annotations

from expense_lens.modules.receipts.models import Receipt  # noqa: F401
