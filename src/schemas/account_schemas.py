from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict


class AccountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    theme: str
    notifications_enabled: bool


class UpdateProfileRequest(BaseModel):
    display_name: Optional[str] = None
    theme: Optional[Literal["light", "dark"]] = None
    notifications_enabled: Optional[bool] = None
