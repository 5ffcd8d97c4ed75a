from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# Base configuration for ORM compatibility; the mobile client speaks camelCase
class CamelModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class MessageResponse(CamelModel):
    success: bool = True
    message: str
