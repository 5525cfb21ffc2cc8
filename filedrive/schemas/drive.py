from pydantic import BaseModel, Field

from filedrive.schemas.file import FileRead
from filedrive.schemas.folder import BreadcrumbItem, FolderRead


class RenameItemRequest(BaseModel):
    current_path: str = ""
    old_item_name: str
    new_item_name: str


class DeleteItemRequest(BaseModel):
    current_path: str = ""
    item_name: str


class MoveItemRequest(BaseModel):
    current_path: str = ""
    item_name: str
    destination_path: str = ""


class DirectoryListing(BaseModel):
    path: str
    breadcrumb: list[BreadcrumbItem] = Field(default_factory=list)
    folders: list[FolderRead]
    files: list[FileRead]
    empty: bool


class MessageResponse(BaseModel):
    message: str
