from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """camelCase on the wire; snake_case field names are accepted on input too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
