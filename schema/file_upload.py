from typing import List, Annotated, Optional
from pydantic import BaseModel, Field


class CloudinaryImageUploadResponse(BaseModel):
    """Response model for Cloudinary image upload. Only the fields this API reads.
    """

    asset_id: Annotated[Optional[str], Field(description="Unique identifier for the asset in Cloudinary", default=None)]
    public_id: Annotated[str, Field(description="Public ID of the uploaded asset")]
    format: Annotated[Optional[str], Field(description="File format of the uploaded asset", default=None)]
    resource_type: Annotated[Optional[str], Field(description="Resource type of the uploaded asset", default=None)]
    bytes: Annotated[Optional[int], Field(description="Size of the uploaded asset in bytes", default=None)]
    created_at: Annotated[Optional[str], Field(description="Timestamp when the asset was created", default=None)]
    tags: Annotated[List[str], Field(description="Tags associated with the uploaded asset", default=[])]
    url: Annotated[str, Field(description="URL of the uploaded asset")]
    secure_url: Annotated[str, Field(description="Secure URL of the uploaded asset")]
