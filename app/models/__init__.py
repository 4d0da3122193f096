"""
SQLAlchemy ORM models.
"""

from app.models.asset import ApprovalStatus, Asset, AssetFormValue, AssetStatus
from app.models.category import AssetCategory, AssetCategoryClass
from app.models.form import Form, FormField, FormFieldType

__all__ = [
    "ApprovalStatus",
    "Asset",
    "AssetCategory",
    "AssetCategoryClass",
    "AssetFormValue",
    "AssetStatus",
    "Form",
    "FormField",
    "FormFieldType",
]
