"""
Data contracts for the Steam Store appdetails endpoint.

Only the fields the catalog consumes are modelled; everything
else in the payload is ignored.
"""

from typing import Annotated, Any

from pydantic import BaseModel, Field, field_validator


class ReleaseDate(BaseModel):
    """Release date information."""

    coming_soon: bool = Field(default=False, description="Whether the game is not yet released")
    date: str = Field(default="", description="Release date string")

    @field_validator("date", mode="before")
    @classmethod
    def coerce_missing_date(cls, v: Any) -> str:
        """Steam sends null for some unannounced titles."""
        return v or ""


class Platform(BaseModel):
    """Platform availability."""

    windows: bool = Field(default=False)
    mac: bool = Field(default=False)
    linux: bool = Field(default=False)

    @property
    def names(self) -> set[str]:
        """Platform tags as stored in the catalog."""
        flags = {"Windows": self.windows, "Mac": self.mac, "Linux": self.linux}
        return {name for name, enabled in flags.items() if enabled}


class Genre(BaseModel):
    """Game genre."""

    id: str
    description: str

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        """Genre ids arrive as strings or ints depending on the endpoint."""
        return str(v)


class StoreAppDetails(BaseModel):
    """Game data from the appdetails ``data`` object."""

    steam_appid: int | None = Field(default=None, description="Steam application ID")
    name: str = Field(..., min_length=1, description="Game name")
    short_description: str = Field(default="", description="Brief description")
    header_image: str = Field(default="", description="Header image URL")
    genres: list[Genre] = Field(default_factory=list)
    platforms: Platform = Field(default_factory=Platform)
    release_date: ReleaseDate = Field(default_factory=ReleaseDate)

    @field_validator("name", "short_description", "header_image", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        if v is None:
            return ""
        return v

    @field_validator("genres", mode="before")
    @classmethod
    def coerce_missing_genres(cls, v: Any) -> Any:
        return v or []

    @property
    def genre_names(self) -> set[str]:
        """Genre descriptions as a set of tags."""
        return {g.description.strip() for g in self.genres if g.description.strip()}


class StoreAppDetailsEnvelope(BaseModel):
    """
    Per-app wrapper in the appdetails response.

    The API returns ``{app_id: {success: bool, data: {...}}}``.
    """

    success: bool
    data: StoreAppDetails | None = None


AppId = Annotated[int, Field(gt=0, description="Steam App ID")]
