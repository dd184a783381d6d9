from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class HumanizeResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    humanized_text: str
    original_word_count: int = Field(ge=0)
    humanized_word_count: int = Field(ge=0)
