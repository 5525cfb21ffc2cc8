from filedrive.schemas.auth import LoginRequest, TokenResponse, UserCreate, UserRead
from filedrive.schemas.drive import DeleteItemRequest, DirectoryListing, MessageResponse, MoveItemRequest, RenameItemRequest
from filedrive.schemas.file import FileRead, UploadResponse
from filedrive.schemas.folder import BreadcrumbItem, FolderCreate, FolderRead

__all__ = [
    "UserCreate",
    "UserRead",
    "LoginRequest",
    "TokenResponse",
    "FolderCreate",
    "FolderRead",
    "BreadcrumbItem",
    "FileRead",
    "UploadResponse",
    "RenameItemRequest",
    "DeleteItemRequest",
    "MoveItemRequest",
    "DirectoryListing",
    "MessageResponse",
]
