from pydantic import BaseModel
from typing import Optional


class UploadResult(BaseModel):
    reference: str
    url: str
    folder: str
    filename: str
    size: int
    content_type: Optional[str] = None
    mode: str
