from datetime import datetime

from pydantic import BaseModel


class FileRead(BaseModel):
    id: str
    filename: str
    format: str
    size: int | None
    url: str
    uploaded_at: datetime
    folder_id: str | None
    owner_username: str | None = None

    model_config = {"from_attributes": True}


class UploadResponse(BaseModel):
    count: int
