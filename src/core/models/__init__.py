"""
Domain models — Pydantic types for the app store helper.

All models are re-exported here for convenient access:

    from src.core.models import AppsConfig, PackageRequirement, PackageFacts
"""

from src.core.models.app import AppDecision, PackageRequirement, flatten
from src.core.models.config import AppsConfig
from src.core.models.packages import PackageFact, PackageFacts

__all__ = [
    # app.py
    "AppDecision",
    "PackageRequirement",
    "flatten",
    # config.py
    "AppsConfig",
    # packages.py
    "PackageFact",
    "PackageFacts",
]
