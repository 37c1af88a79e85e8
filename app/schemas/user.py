"""Acting user as returned by the users API."""

from pydantic import BaseModel, ConfigDict, Field


class ActingUser(BaseModel):
    """The logged-in user. Only `reference_id` is stamped onto writes."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: str
    first_name: str = Field(default="", alias="Firstname")
    last_name: str = Field(default="", alias="Lastname")
    role: str = Field(default="", alias="Role")
    email: str = Field(default="", alias="Email")
    reference_id: str = Field(default="", alias="ReferenceID")
