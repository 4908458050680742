"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Each class maps to a table; ownership is a many-to-one relation to `User`.
"""

from typing import Optional, List
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime, date as date_type, timezone


class User(SQLModel, table=True):
    """A registered user (security principal).

    Fields:
    - `username`: unique login name
    - `password_hash`: hashed password string (never store plaintext)
    - `authorities`: comma-separated role names, e.g. `ROLE_USER,ROLE_ADMIN`
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    authorities: str = Field(default="ROLE_USER")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    cards: List['Card'] = Relationship(back_populates='user')
    promotions: List['Promotion'] = Relationship(back_populates='user')

    def authority_list(self) -> List[str]:
        return [a.strip() for a in (self.authorities or "").split(",") if a.strip()]


class Card(SQLModel, table=True):
    """A loyalty card. `number` is unique across all cards."""
    id: Optional[int] = Field(default=None, primary_key=True)
    number: str = Field(index=True, nullable=False, unique=True)
    card_type: Optional[str] = None
    user_id: int = Field(foreign_key='user.id')
    user: Optional[User] = Relationship(back_populates='cards')


class Promotion(SQLModel, table=True):
    """A promotion offered to card holders, owned by the user who created it."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    discount: Optional[int] = None
    description: Optional[str] = None
    user_id: Optional[int] = Field(default=None, foreign_key='user.id', index=True)
    user: Optional[User] = Relationship(back_populates='promotions')


class Campaign(SQLModel, table=True):
    """A scheduled kiosk campaign.

    `type` is `PROMOTION` (shows a promotion) or `CUSTOM` (shows
    `custom_text` to holders of `card_type` cards).
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    type: str
    date: Optional[date_type] = None
    promotion_id: Optional[int] = Field(default=None, foreign_key='promotion.id')
    card_type: Optional[str] = None
    custom_text: Optional[str] = None
    user_id: Optional[int] = Field(default=None, foreign_key='user.id', index=True)
    promotion: Optional[Promotion] = Relationship()
    user: Optional[User] = Relationship()
