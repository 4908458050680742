"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the kiosk backend. Controllers
are thin: they validate requests, delegate to services, and build the
response status and headers (alerts, pagination, Location).

Endpoints implemented:
- POST /auth/register
- POST /auth/login
- GET /health
- POST, PUT, GET /api/promotions and GET, DELETE /api/promotions/{id}
- POST, PUT, GET /api/campaigns and GET, DELETE /api/campaigns/{id}
- POST, GET /api/cards and GET /api/cards/{id}, /api/cards/number/{number}
"""

from fastapi import FastAPI, Depends, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlmodel import Session
from typing import List
import json
import logging
import os
import time
import uuid
from .database import engine, create_db_and_tables, get_session, get_read_only_session
from . import services, repositories
from .config import settings
from .schemas import RegisterIn, PromotionDTO, CampaignDTO, CardDTO
from .security import Principal, ROLE_ADMIN, ROLE_USER, get_current_principal, listing_scope_for
from .services import InvalidRequest
from .utils import header_util
from .utils.pagination import Pageable, parse_sort, generate_pagination_headers

app = FastAPI(title="Kiosk API")
logger = logging.getLogger("kiosk.api")
if not logger.handlers:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))

# Entity name used in failure alerts, keyed by the path segment after /api/
_ENTITY_BY_SEGMENT = {
    "promotions": services.PromotionService.ENTITY_NAME,
    "campaigns": services.CampaignService.ENTITY_NAME,
    "cards": services.CardService.ENTITY_NAME,
}

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )


def _bootstrap_admin():
    """Make sure the configured admin account exists and holds ROLE_ADMIN."""
    if not (settings.ADMIN_USERNAME and settings.ADMIN_PASSWORD):
        return
    with Session(engine) as session:
        services.AuthService(session).ensure_user(
            settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD, [ROLE_USER, ROLE_ADMIN]
        )
    logger.info("admin account %s ready", settings.ADMIN_USERNAME)


create_db_and_tables()
_bootstrap_admin()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        if request.url.path.startswith("/api"):
            logger.exception(
                "request_failed %s",
                json.dumps(
                    {
                        "request_id": req_id,
                        "path": request.url.path,
                        "method": request.method,
                        "duration_ms": elapsed_ms,
                        "client": request.client.host if request.client else "unknown",
                    },
                    ensure_ascii=True,
                ),
            )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    if request.url.path.startswith("/api"):
        logger.info(
            "request_done %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
    return response


def _entity_for_path(path: str) -> str:
    parts = path.strip("/").split("/")
    if len(parts) >= 2 and parts[0] == "api":
        return _ENTITY_BY_SEGMENT.get(parts[1], parts[1])
    return ""


@app.exception_handler(InvalidRequest)
async def invalid_request_handler(request: Request, exc: InvalidRequest):
    return JSONResponse(
        status_code=400,
        content={"detail": exc.message},
        headers=header_util.create_failure_alert(exc.entity_name, exc.error_key, exc.message),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    return JSONResponse(
        status_code=400,
        content={"detail": errors},
        headers=header_util.create_failure_alert(_entity_for_path(request.url.path), "validation", str(errors)),
    )


def get_pageable(
    request: Request,
    page: int = Query(0, ge=0),
    size: int = Query(settings.PAGE_SIZE_DEFAULT, ge=1, le=settings.PAGE_SIZE_MAX),
    sort: List[str] = Query(default=[]),
) -> Pageable:
    """FastAPI dependency turning `page`, `size` and `sort` query params into a `Pageable`."""
    try:
        return Pageable(page=page, size=size, sort=parse_sort(sort))
    except ValueError as e:
        raise InvalidRequest(_entity_for_path(request.url.path), "badsort", str(e))


@app.post('/auth/register')
def register(payload: RegisterIn, db: Session = Depends(get_session)):
    """Register a new user (idempotent).

    Returns the existing user if the username is already taken, which
    keeps automation and tests simple.
    """
    existing = repositories.UserRepository(db).get_by_username(payload.username)
    if existing:
        return {'id': existing.id, 'username': existing.username}
    user = services.AuthService(db).register(payload.username, payload.password)
    return {'id': user.id, 'username': user.username}


@app.post('/auth/login')
def login(payload: RegisterIn, db: Session = Depends(get_session)):
    """Authenticate a user and return a short-lived JWT token.

    The token carries `user_id`, `username` and `auth` (the authorities)
    and is signed with the configured JWT secret.
    """
    token = services.AuthService(db).authenticate(payload.username, payload.password)
    if not token:
        raise HTTPException(status_code=401, detail='invalid credentials')
    return {'access_token': token}


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}


# -------------------------- promotions --------------------------

def _create_promotion(dto: PromotionDTO, principal: Principal, db: Session) -> JSONResponse:
    if dto.id is not None:
        raise InvalidRequest("promotion", "idexists", "A new promotion cannot already have an ID")
    result = services.PromotionService(db).save(dto, principal)
    return JSONResponse(
        status_code=201,
        content=jsonable_encoder(result),
        headers={
            "Location": f"/api/promotions/{result.id}",
            **header_util.create_entity_creation_alert("promotion", str(result.id)),
        },
    )


@app.post('/api/promotions', status_code=201, response_model=PromotionDTO)
def create_promotion(dto: PromotionDTO, db: Session = Depends(get_session),
                     principal: Principal = Depends(get_current_principal)):
    """Create a new promotion.

    Returns 201 with the saved promotion and a `Location` header, or 400
    if the body already carries an id.
    """
    logger.debug("REST request to save Promotion : %s", dto)
    return _create_promotion(dto, principal, db)


@app.put('/api/promotions', response_model=PromotionDTO)
def update_promotion(dto: PromotionDTO, db: Session = Depends(get_session),
                     principal: Principal = Depends(get_current_principal)):
    """Replace an existing promotion; a body without id is created instead."""
    logger.debug("REST request to update Promotion : %s", dto)
    if dto.id is None:
        return _create_promotion(dto, principal, db)
    result = services.PromotionService(db).save(dto, principal)
    return JSONResponse(
        status_code=200,
        content=jsonable_encoder(result),
        headers=header_util.create_entity_update_alert("promotion", str(dto.id)),
    )


@app.get('/api/promotions', response_model=List[PromotionDTO])
def get_all_promotions(pageable: Pageable = Depends(get_pageable), db: Session = Depends(get_read_only_session),
                       principal: Principal = Depends(get_current_principal)):
    """Return one page of the promotions the caller may see.

    Administrators see every owner's promotions, other users only their
    own. Pagination is described by `X-Total-Count` and `Link` headers.
    """
    logger.debug("REST request to get a page of Promotions")
    try:
        page = services.PromotionService(db).find_all(pageable, listing_scope_for(principal))
    except ValueError as e:
        raise InvalidRequest("promotion", "badsort", str(e))
    return JSONResponse(
        status_code=200,
        content=jsonable_encoder(page.content),
        headers=generate_pagination_headers(page, "/api/promotions"),
    )


@app.get('/api/promotions/{promotion_id}', response_model=PromotionDTO)
def get_promotion(promotion_id: int, db: Session = Depends(get_session),
                  principal: Principal = Depends(get_current_principal)):
    """Return the promotion with `promotion_id`, or 404 with an empty body."""
    logger.debug("REST request to get Promotion : %s", promotion_id)
    result = services.PromotionService(db).find_one(promotion_id)
    if result is None:
        return Response(status_code=404)
    return result


@app.delete('/api/promotions/{promotion_id}')
def delete_promotion(promotion_id: int, db: Session = Depends(get_session),
                     principal: Principal = Depends(get_current_principal)):
    """Delete the promotion with `promotion_id`.

    Answers 200 whether or not a row existed; 400 while campaigns still
    reference the promotion.
    """
    logger.debug("REST request to delete Promotion : %s", promotion_id)
    services.PromotionService(db).delete(promotion_id)
    return Response(status_code=200, headers=header_util.create_entity_deletion_alert("promotion", str(promotion_id)))


# -------------------------- campaigns --------------------------

def _create_campaign(dto: CampaignDTO, principal: Principal, db: Session) -> JSONResponse:
    if dto.id is not None:
        raise InvalidRequest("campaign", "idexists", "A new campaign cannot already have an ID")
    result = services.CampaignService(db).save(dto, principal)
    return JSONResponse(
        status_code=201,
        content=jsonable_encoder(result),
        headers={
            "Location": f"/api/campaigns/{result.id}",
            **header_util.create_entity_creation_alert("campaign", str(result.id)),
        },
    )


@app.post('/api/campaigns', status_code=201, response_model=CampaignDTO)
def create_campaign(dto: CampaignDTO, db: Session = Depends(get_session),
                    principal: Principal = Depends(get_current_principal)):
    logger.debug("REST request to save Campaign : %s", dto)
    return _create_campaign(dto, principal, db)


@app.put('/api/campaigns', response_model=CampaignDTO)
def update_campaign(dto: CampaignDTO, db: Session = Depends(get_session),
                    principal: Principal = Depends(get_current_principal)):
    logger.debug("REST request to update Campaign : %s", dto)
    if dto.id is None:
        return _create_campaign(dto, principal, db)
    result = services.CampaignService(db).save(dto, principal)
    return JSONResponse(
        status_code=200,
        content=jsonable_encoder(result),
        headers=header_util.create_entity_update_alert("campaign", str(dto.id)),
    )


@app.get('/api/campaigns', response_model=List[CampaignDTO])
def get_all_campaigns(pageable: Pageable = Depends(get_pageable), db: Session = Depends(get_read_only_session),
                      principal: Principal = Depends(get_current_principal)):
    logger.debug("REST request to get a page of Campaigns")
    try:
        page = services.CampaignService(db).find_all(pageable, listing_scope_for(principal))
    except ValueError as e:
        raise InvalidRequest("campaign", "badsort", str(e))
    return JSONResponse(
        status_code=200,
        content=jsonable_encoder(page.content),
        headers=generate_pagination_headers(page, "/api/campaigns"),
    )


@app.get('/api/campaigns/{campaign_id}', response_model=CampaignDTO)
def get_campaign(campaign_id: int, db: Session = Depends(get_session),
                 principal: Principal = Depends(get_current_principal)):
    logger.debug("REST request to get Campaign : %s", campaign_id)
    result = services.CampaignService(db).find_one(campaign_id)
    if result is None:
        return Response(status_code=404)
    return result


@app.delete('/api/campaigns/{campaign_id}')
def delete_campaign(campaign_id: int, db: Session = Depends(get_session),
                    principal: Principal = Depends(get_current_principal)):
    logger.debug("REST request to delete Campaign : %s", campaign_id)
    services.CampaignService(db).delete(campaign_id)
    return Response(status_code=200, headers=header_util.create_entity_deletion_alert("campaign", str(campaign_id)))


# -------------------------- cards --------------------------

@app.post('/api/cards', status_code=201, response_model=CardDTO)
def create_card(dto: CardDTO, db: Session = Depends(get_session),
                principal: Principal = Depends(get_current_principal)):
    """Register a card for the caller; 400 if the number is already taken."""
    logger.debug("REST request to save Card : %s", dto)
    if dto.id is not None:
        raise InvalidRequest("card", "idexists", "A new card cannot already have an ID")
    result = services.CardService(db).create(dto, principal)
    return JSONResponse(
        status_code=201,
        content=jsonable_encoder(result),
        headers={
            "Location": f"/api/cards/{result.id}",
            **header_util.create_entity_creation_alert("card", str(result.id)),
        },
    )


@app.get('/api/cards', response_model=List[CardDTO])
def get_my_cards(db: Session = Depends(get_read_only_session),
                 principal: Principal = Depends(get_current_principal)):
    """Return the cards owned by the caller."""
    logger.debug("REST request to get Cards of %s", principal.login)
    return services.CardService(db).find_mine(principal)


@app.get('/api/cards/number/{number}', response_model=CardDTO)
def get_card_by_number(number: str, db: Session = Depends(get_session),
                       principal: Principal = Depends(get_current_principal)):
    """Look a card up by its exact number, or 404 with an empty body."""
    logger.debug("REST request to get Card by number : %s", number)
    result = services.CardService(db).find_by_number(number)
    if result is None:
        return Response(status_code=404)
    return result


@app.get('/api/cards/{card_id}', response_model=CardDTO)
def get_card(card_id: int, db: Session = Depends(get_session),
             principal: Principal = Depends(get_current_principal)):
    logger.debug("REST request to get Card : %s", card_id)
    result = services.CardService(db).find_one(card_id)
    if result is None:
        return Response(status_code=404)
    return result
