"""
SQLAlchemy ORM models.

Import all models here for Alembic auto-detection.
"""

from app.models.fee_schedule import MpfsBenchmark, GpciLocality, ZipToLocality

__all__ = [
    # Fee schedule reference data
    "MpfsBenchmark",
    "GpciLocality",
    "ZipToLocality",
]
