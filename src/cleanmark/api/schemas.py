from __future__ import annotations

from pydantic import BaseModel, Field


class OptionsPayload(BaseModel):
    preserve_tables: bool | None = Field(default=None, alias="preserveTables")
    max_length: int | None = Field(default=None, ge=0, alias="maxLength")
    include_image_alt: bool | None = Field(default=None, alias="includeImageAlt")
    allowed_domains: list[str] | None = Field(default=None, alias="allowedDomains")
    preserve_line_breaks: bool | None = Field(default=None, alias="preserveLineBreaks")

    model_config = {"populate_by_name": True}

    def overrides(self) -> dict[str, object]:
        return self.model_dump(exclude_none=True)


class ConvertRequest(BaseModel):
    html: str
    options: OptionsPayload | None = None
    include_html: bool = Field(default=False, alias="includeHtml")

    model_config = {"populate_by_name": True}


class ConvertResponse(BaseModel):
    markdown: str
    html: str | None = None
    warnings: list[str] = Field(default_factory=list)


class HealthStatus(BaseModel):
    status: str
    version: str
