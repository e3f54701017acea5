from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LinkCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    url: str = Field(..., min_length=1, max_length=2048)
    icon: str = Field("link", min_length=1, max_length=64)
    order: int = 0


class LinkOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    user_id: int
    title: str
    url: str
    icon: str
    order: int
