"""Business logic services used by HTTP controllers.

Services are thin: they enforce the business rules for an aggregate,
persist through repositories and hand DTOs back to the controllers.
Every write commits inside the repository call, so each operation is its
own transaction. There is no version check on updates; the last writer
wins.
"""

import logging
from typing import List, Optional

from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from . import mappers, models, repositories
from .schemas import CampaignDTO, CardDTO, PromotionDTO
from .security import ROLE_USER, Principal, ListingScope, create_token
from .utils.pagination import Page, Pageable

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

logger = logging.getLogger("kiosk.services")


class InvalidRequest(ValueError):
    """A request that conflicts with the operation's rules (HTTP 400).

    `error_key` is the machine-readable reason sent to clients in the
    failure alert header; the message is for humans and logs.
    """

    def __init__(self, entity_name: str, error_key: str, message: str):
        super().__init__(message)
        self.entity_name = entity_name
        self.error_key = error_key
        self.message = message


class AuthService:
    """Authentication related operations (register + authenticate)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def register(self, username: str, password: str, authorities: Optional[List[str]] = None) -> models.User:
        """Create a new user with a hashed password.

        Returns the persisted `User` instance.
        """
        hashed = PWD_CTX.hash(password)
        u = models.User(username=username, password_hash=hashed,
                        authorities=",".join(authorities or [ROLE_USER]))
        return self.user_repo.create(u)

    def ensure_user(self, username: str, password: str, authorities: List[str]) -> models.User:
        """Create `username` if missing, otherwise make sure it holds `authorities`."""
        existing = self.user_repo.get_by_username(username)
        if not existing:
            return self.register(username, password, authorities)
        held = existing.authority_list()
        missing = [a for a in authorities if a not in held]
        if missing:
            existing.authorities = ",".join(held + missing)
            self.session.add(existing)
            self.session.commit()
            self.session.refresh(existing)
        return existing

    def authenticate(self, username: str, password: str):
        """Verify credentials and return a signed JWT token on success.

        Returns `None` if authentication fails.
        """
        user = self.user_repo.get_by_username(username)
        if not user:
            return None
        if not PWD_CTX.verify(password, user.password_hash):
            return None
        return create_token(user.id, user.username, user.authority_list())


def _check_owner_exists(user_repo, entity_name: str, user_id: int):
    if user_repo.get(user_id) is None:
        raise InvalidRequest(entity_name, "usernotfound", f"No user with ID {user_id}")


class PromotionService:
    """Lifecycle of `Promotion` rows."""
    ENTITY_NAME = "promotion"

    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.PromotionRepository(session)
        self.campaign_repo = repositories.CampaignRepository(session)
        self.user_repo = repositories.UserRepository(session)

    def save(self, dto: PromotionDTO, principal: Principal) -> PromotionDTO:
        """Insert (no id) or fully replace (id) a promotion.

        The owner defaults to the caller when the DTO names none. Raises
        `InvalidRequest` when the owner or the id matches no stored row.
        """
        if dto.user_id is None:
            dto = dto.model_copy(update={"user_id": principal.user_id})
        _check_owner_exists(self.user_repo, self.ENTITY_NAME, dto.user_id)
        existing = None
        if dto.id is not None:
            existing = self.repo.get(dto.id)
            if existing is None:
                raise InvalidRequest(self.ENTITY_NAME, "idnotfound", f"No promotion with ID {dto.id}")
        promotion = self.repo.save(mappers.dto_to_promotion(dto, existing))
        return mappers.promotion_to_dto(promotion)

    def find_all(self, pageable: Pageable, scope: ListingScope) -> Page:
        """Return one page of promotions visible through `scope`, as DTOs."""
        page = self.repo.find_all(pageable, scope)
        page.content = mappers.promotions_to_dtos(page.content)
        return page

    def find_one(self, promotion_id: int) -> Optional[PromotionDTO]:
        promotion = self.repo.get(promotion_id)
        if promotion is None:
            return None
        return mappers.promotion_to_dto(promotion)

    def delete(self, promotion_id: int) -> int:
        """Delete a promotion; a missing id is not an error.

        Raises `InvalidRequest` while campaigns still reference the promotion.
        """
        in_use = self.campaign_repo.count_by_promotion(promotion_id)
        if in_use:
            raise InvalidRequest(self.ENTITY_NAME, "promotioninuse",
                                 f"Promotion {promotion_id} is used by {in_use} campaign(s)")
        deleted = self.repo.delete_by_id(promotion_id)
        logger.debug("Deleted %d promotion row(s) for id %s", deleted, promotion_id)
        return deleted


class CampaignService:
    """Lifecycle of `Campaign` rows."""
    ENTITY_NAME = "campaign"

    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.CampaignRepository(session)
        self.promotion_repo = repositories.PromotionRepository(session)
        self.user_repo = repositories.UserRepository(session)

    def save(self, dto: CampaignDTO, principal: Principal) -> CampaignDTO:
        """Insert or fully replace a campaign after checking its promotion exists."""
        if dto.user_id is None:
            dto = dto.model_copy(update={"user_id": principal.user_id})
        _check_owner_exists(self.user_repo, self.ENTITY_NAME, dto.user_id)
        if dto.promotion_id is not None and self.promotion_repo.get(dto.promotion_id) is None:
            raise InvalidRequest(self.ENTITY_NAME, "promotionnotfound",
                                 f"No promotion with ID {dto.promotion_id}")
        existing = None
        if dto.id is not None:
            existing = self.repo.get(dto.id)
            if existing is None:
                raise InvalidRequest(self.ENTITY_NAME, "idnotfound", f"No campaign with ID {dto.id}")
        campaign = self.repo.save(mappers.dto_to_campaign(dto, existing))
        return mappers.campaign_to_dto(campaign)

    def find_all(self, pageable: Pageable, scope: ListingScope) -> Page:
        page = self.repo.find_all(pageable, scope)
        page.content = mappers.campaigns_to_dtos(page.content)
        return page

    def find_one(self, campaign_id: int) -> Optional[CampaignDTO]:
        campaign = self.repo.get(campaign_id)
        if campaign is None:
            return None
        return mappers.campaign_to_dto(campaign)

    def delete(self, campaign_id: int) -> int:
        deleted = self.repo.delete_by_id(campaign_id)
        logger.debug("Deleted %d campaign row(s) for id %s", deleted, campaign_id)
        return deleted


class CardService:
    """Card registration and lookups for the current user."""
    ENTITY_NAME = "card"

    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.CardRepository(session)

    def create(self, dto: CardDTO, principal: Principal) -> CardDTO:
        """Register a new card for the caller.

        Raises `InvalidRequest` when the number is already taken.
        """
        if self.repo.find_by_number(dto.number) is not None:
            raise InvalidRequest(self.ENTITY_NAME, "numberexists", f"Card number {dto.number} is already registered")
        dto = dto.model_copy(update={"user_id": principal.user_id})
        try:
            card = self.repo.save(mappers.dto_to_card(dto))
        except IntegrityError:
            # another request registered the same number since the check above
            self.session.rollback()
            raise InvalidRequest(self.ENTITY_NAME, "numberexists", f"Card number {dto.number} is already registered")
        return mappers.card_to_dto(card)

    def find_mine(self, principal: Principal) -> List[CardDTO]:
        return mappers.cards_to_dtos(self.repo.find_by_user_is_current_user(principal))

    def find_by_number(self, number: str) -> Optional[CardDTO]:
        card = self.repo.find_by_number(number)
        if card is None:
            return None
        return mappers.card_to_dto(card)

    def find_one(self, card_id: int) -> Optional[CardDTO]:
        card = self.repo.get(card_id)
        if card is None:
            return None
        return mappers.card_to_dto(card)
