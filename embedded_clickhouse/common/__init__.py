from .enums import AssetType
from .file_management import download_file, file_sha512

__all__ = ["AssetType", "download_file", "file_sha512"]
