from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ImageGenerationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(min_length=1)
    n: int = Field(default=1, ge=1)
    size: Literal["256x256", "512x512", "1024x1024", "1792x1024", "1024x1792"] = "1024x1024"
    quality: Literal["standard", "hd"] = "standard"
    response_format: Literal["url", "b64_json"] = Field(default="url", alias="responseFormat")
    style: Literal["vivid", "natural"] = "natural"


class ImageGenerationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    images: list[str]
    revised_prompts: list[str] = Field(default_factory=list, alias="revisedPrompts")

