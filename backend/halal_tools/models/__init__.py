"""
SQLAlchemy models
"""
from halal_tools.core.database import Base  # noqa: F401
# Import all models here so Alembic can detect them
from halal_tools.models.metal_rate import MetalRate  # noqa: F401
from halal_tools.models.usage import ContractGeneration, UsageAccount  # noqa: F401
from halal_tools.models.user import PasswordReset, User  # noqa: F401
