from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class VideoRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    user_id: str
    title: str
    description: str = ""

    thumbnail_url: Optional[str] = None
    video_url: Optional[str] = None  # "bucket,key" pointer, never a signed URL

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)

    def to_response(self) -> dict:
        return self.model_dump(mode="json")


class VideoCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
