"""
Business logic services for the asset tag engine.
Services handle core operations separate from API endpoints.
"""

from app.services.asset_service import AssetService, MAX_CREATE_ATTEMPTS
from app.services.class_resolver import ClassIdentity, ClassResolver
from app.services.code_renderer import CodeRenderer
from app.services.code_service import CodeService, load_logo
from app.services.image_upload import StorageImageUploader
from app.services.qr_payload import QrPayloadBuilder
from app.services.sequence_allocator import SequenceAllocator, SequenceScope
from app.services.tag_builder import TagBuilder
from app.services.tag_config import load_tag_config, load_tag_group_config

__all__ = [
    "AssetService",
    "MAX_CREATE_ATTEMPTS",
    "ClassIdentity",
    "ClassResolver",
    "CodeRenderer",
    "CodeService",
    "load_logo",
    "StorageImageUploader",
    "QrPayloadBuilder",
    "SequenceAllocator",
    "SequenceScope",
    "TagBuilder",
    "load_tag_config",
    "load_tag_group_config",
]
