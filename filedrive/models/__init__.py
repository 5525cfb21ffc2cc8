from filedrive.models.file import File
from filedrive.models.folder import Folder
from filedrive.models.user import User

__all__ = ["User", "Folder", "File"]
