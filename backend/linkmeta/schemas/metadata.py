from pydantic import BaseModel, ConfigDict, Field, field_validator


class MetadataRequest(BaseModel):
    url: str | None = None

    @field_validator("url", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v


class MetadataRecord(BaseModel):
    """Link preview summary. Serialized with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    domain: str
    image: str | None = None
    image_aspect_ratio: float = Field(16 / 9, alias="imageAspectRatio")
    description: str | None = None
    excerpt: str | None = None
    author: list[str] = Field(default_factory=list)
    type: str = "website"
    content_type: str = Field("website", alias="contentType")
    favicon: str | None = None
    logo: str | None = None
    cached: bool | None = None  # set by the caching layer only

    def to_json(self) -> dict:
        """Wire form: camelCase keys, ``logo``/``cached`` only when set."""
        data = self.model_dump(by_alias=True)
        if self.logo is None:
            data.pop("logo")
        if self.cached is None:
            data.pop("cached")
        return data


class ErrorResponse(BaseModel):
    error: str


class MetadataErrorResponse(BaseModel):
    error: str
    fallback: MetadataRecord


class FaviconResponse(BaseModel):
    faviconUrl: str


class MessageResponse(BaseModel):
    message: str


class SummarizeRequest(BaseModel):
    url: str | None = None
