"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
cards, promotions, campaigns). Repositories return SQLModel objects;
write methods commit and refresh so callers get a managed instance back.
"""

from typing import List, Optional
from sqlmodel import Session, select
from sqlalchemy import func
from . import models
from .utils.pagination import Page, Pageable


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_by_username(self, username: str) -> Optional[models.User]:
        """Return a `User` by username or `None` if not found."""
        stmt = select(models.User).where(models.User.username == username)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)


class CardRepository:
    """Queries for `Card` records."""
    def __init__(self, session: Session):
        self.session = session

    def find_by_user_is_current_user(self, principal) -> List[models.Card]:
        """Return every card owned by the user logged in as `principal.login`."""
        stmt = (
            select(models.Card)
            .join(models.User, models.Card.user_id == models.User.id)
            .where(models.User.username == principal.login)
        )
        return self.session.exec(stmt).all()

    def find_by_number(self, number: str) -> Optional[models.Card]:
        """Exact-match lookup by card number; `None` when nothing matches."""
        if not number:
            raise ValueError("card number must not be empty")
        stmt = select(models.Card).where(models.Card.number == number)
        return self.session.exec(stmt).first()

    def get(self, card_id: int) -> Optional[models.Card]:
        return self.session.get(models.Card, card_id)

    def save(self, card: models.Card) -> models.Card:
        self.session.add(card)
        self.session.commit()
        self.session.refresh(card)
        return card


class OwnedEntityRepository:
    """Paged, scoped CRUD for a model with a `user_id` owner column.

    Subclasses set `model` and `sortable` (the properties clients may sort
    by). Listings take a `ListingScope` that narrows the query to what the
    caller may see.
    """
    model = None
    sortable = ("id",)

    def __init__(self, session: Session):
        self.session = session

    def find_all(self, pageable: Pageable, scope) -> Page:
        """Return one page of rows visible through `scope`.

        Ordering is the store's own unless `pageable.sort` names columns.
        Raises ValueError for a property that is not sortable.
        """
        stmt = scope.apply(select(self.model), self.model)
        count_stmt = scope.apply(select(func.count()).select_from(self.model), self.model)
        total = self.session.exec(count_stmt).one()
        for prop, direction in pageable.sort:
            if prop not in self.sortable:
                raise ValueError(f"cannot sort by {prop!r}")
            column = getattr(self.model, prop)
            stmt = stmt.order_by(column.desc() if direction == "desc" else column.asc())
        stmt = stmt.offset(pageable.offset).limit(pageable.size)
        rows = self.session.exec(stmt).all()
        return Page(content=list(rows), number=pageable.page, size=pageable.size,
                    total_elements=total, sort=pageable.sort)

    def get(self, entity_id: int):
        return self.session.get(self.model, entity_id)

    def save(self, entity):
        self.session.add(entity)
        self.session.commit()
        self.session.refresh(entity)
        return entity

    def delete_by_id(self, entity_id: int) -> int:
        """Delete the row with `entity_id` and return how many rows went away."""
        entity = self.session.get(self.model, entity_id)
        if entity is None:
            return 0
        self.session.delete(entity)
        self.session.commit()
        return 1


class PromotionRepository(OwnedEntityRepository):
    model = models.Promotion
    sortable = ("id", "name", "discount", "description", "user_id")


class CampaignRepository(OwnedEntityRepository):
    model = models.Campaign
    sortable = ("id", "type", "date", "promotion_id", "card_type", "user_id")

    def count_by_promotion(self, promotion_id: int) -> int:
        """Number of campaigns pointing at `promotion_id`."""
        stmt = select(func.count()).select_from(models.Campaign).where(models.Campaign.promotion_id == promotion_id)
        return self.session.exec(stmt).one()
