"""Conversions between table models and transfer objects."""

from typing import Iterable, List, Optional

from . import models
from .schemas import CampaignDTO, CardDTO, PromotionDTO


def _login(user: Optional[models.User]) -> Optional[str]:
    return user.username if user is not None else None


def promotion_to_dto(promotion: models.Promotion) -> PromotionDTO:
    return PromotionDTO(
        id=promotion.id,
        name=promotion.name,
        discount=promotion.discount,
        description=promotion.description,
        user_id=promotion.user_id,
        user_login=_login(promotion.user),
    )


def promotions_to_dtos(promotions: Iterable[models.Promotion]) -> List[PromotionDTO]:
    return [promotion_to_dto(p) for p in promotions]


def dto_to_promotion(dto: PromotionDTO, promotion: Optional[models.Promotion] = None) -> models.Promotion:
    """Copy every field of `dto` onto `promotion` (a new one if omitted).

    This is a full replace: fields left out of the DTO are cleared.
    """
    if promotion is None:
        promotion = models.Promotion(name=dto.name)
    promotion.name = dto.name
    promotion.discount = dto.discount
    promotion.description = dto.description
    promotion.user_id = dto.user_id
    return promotion


def card_to_dto(card: models.Card) -> CardDTO:
    return CardDTO(
        id=card.id,
        number=card.number,
        card_type=card.card_type,
        user_id=card.user_id,
        user_login=_login(card.user),
    )


def cards_to_dtos(cards: Iterable[models.Card]) -> List[CardDTO]:
    return [card_to_dto(c) for c in cards]


def dto_to_card(dto: CardDTO) -> models.Card:
    return models.Card(number=dto.number, card_type=dto.card_type, user_id=dto.user_id)


def campaign_to_dto(campaign: models.Campaign) -> CampaignDTO:
    return CampaignDTO(
        id=campaign.id,
        type=campaign.type,
        date=campaign.date,
        promotion_id=campaign.promotion_id,
        card_type=campaign.card_type,
        custom_text=campaign.custom_text,
        user_id=campaign.user_id,
        user_login=_login(campaign.user),
    )


def campaigns_to_dtos(campaigns: Iterable[models.Campaign]) -> List[CampaignDTO]:
    return [campaign_to_dto(c) for c in campaigns]


def dto_to_campaign(dto: CampaignDTO, campaign: Optional[models.Campaign] = None) -> models.Campaign:
    if campaign is None:
        campaign = models.Campaign(type=dto.type)
    campaign.type = dto.type
    campaign.date = dto.date
    campaign.promotion_id = dto.promotion_id
    campaign.card_type = dto.card_type
    campaign.custom_text = dto.custom_text
    campaign.user_id = dto.user_id
    return campaign
