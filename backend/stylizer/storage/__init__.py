"""
Request-scoped temporary storage for uploaded images.
"""
from stylizer.storage.uploads import StoredUpload, stored_upload, validate_image_upload

__all__ = ["StoredUpload", "stored_upload", "validate_image_upload"]
