from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelIn(BaseModel):
    """Request body accepting camelCase (wire) or snake_case keys.

    ``model_dump(exclude_unset=True)`` gives the snake_case dict the services take.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
