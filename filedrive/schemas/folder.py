from datetime import datetime

from pydantic import BaseModel


class FolderCreate(BaseModel):
    name: str
    path: str = ""


class FolderRead(BaseModel):
    id: str
    name: str
    parent_folder_id: str | None
    owner_username: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class BreadcrumbItem(BaseModel):
    name: str
    path: str
