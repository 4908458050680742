"""Pydantic request/response schemas used by the API.

These are the transfer objects (DTOs) crossing the HTTP boundary. They
are deliberately distinct from the table models in `kiosk.models`;
`kiosk.mappers` converts between the two.
"""

from datetime import date as date_type
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator


class RegisterIn(BaseModel):
    """Payload for user registration/login endpoints."""
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1)


class TokenOut(BaseModel):
    """Authentication response containing an access token."""
    access_token: str


class UserOut(BaseModel):
    id: int
    username: str


class PromotionDTO(BaseModel):
    """Promotion as exchanged with clients.

    `id` is server-assigned: it must be absent on create and present on
    update. `user_login` is filled by the mapper and ignored on input.
    """
    id: Optional[int] = None
    name: str = Field(min_length=1, max_length=255)
    discount: Optional[int] = Field(default=None, ge=0, le=100)
    description: Optional[str] = None
    user_id: Optional[int] = None
    user_login: Optional[str] = None


class CardDTO(BaseModel):
    id: Optional[int] = None
    number: str = Field(min_length=1, max_length=64)
    card_type: Optional[str] = None
    user_id: Optional[int] = None
    user_login: Optional[str] = None


class CampaignDTO(BaseModel):
    """Campaign as exchanged with clients.

    A `PROMOTION` campaign needs a `date` and a `promotion_id`; a `CUSTOM`
    campaign needs a `date`, a `card_type` and a `custom_text`.
    """
    id: Optional[int] = None
    type: Literal["PROMOTION", "CUSTOM"]
    date: Optional[date_type] = None
    promotion_id: Optional[int] = None
    card_type: Optional[str] = None
    custom_text: Optional[str] = None
    user_id: Optional[int] = None
    user_login: Optional[str] = None

    @model_validator(mode="after")
    def _check_required_for_type(self):
        if self.date is None:
            raise ValueError("date is required")
        if self.type == "PROMOTION" and self.promotion_id is None:
            raise ValueError("promotion_id is required for PROMOTION campaigns")
        if self.type == "CUSTOM":
            missing = [name for name in ("card_type", "custom_text") if not getattr(self, name)]
            if missing:
                raise ValueError(f"{', '.join(missing)} required for CUSTOM campaigns")
        return self
