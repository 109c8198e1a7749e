"""Listing router: homepage trick list, trick list pages and trick comment lists.

"Load more" endpoints are AJAX-only. Zero business logic; delegates entirely
to controller.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.database import get_db
from app.dependencies import (
    get_list_session,
    get_outdated_count_detector,
    get_settings,
    require_ajax,
)
from app.listing import controller
from app.listing.schemas import (
    CommentListResponse,
    HomeTrickListResponse,
    TrickCommentsResponse,
    TrickListResponse,
    TrickPageResponse,
)
from app.listing.staleness import OutdatedCountDetector

router = APIRouter(tags=["Listing"])

_403 = {"description": "Not an AJAX request"}
_404 = {"description": "Not found"}

_LOCALE = Path(pattern=r"^[a-z]{2}(-[A-Z]{2})?$", description="Visitor locale, e.g. en or fr.")


# ---------------------------------------------------------------------------
# Trick list
# ---------------------------------------------------------------------------


@router.get(
    "/{locale}",
    response_model=HomeTrickListResponse,
    summary="Homepage trick list",
    description=(
        "First batch of the homepage trick list with its loading parameters. "
        "Records the total trick count for the visitor so later batches can "
        "detect an outdated list."
    ),
)
async def home_tricks(
    locale: str = _LOCALE,
    session_id: str = Depends(get_list_session),
    detector: OutdatedCountDetector = Depends(get_outdated_count_detector),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
) -> HomeTrickListResponse:
    return await controller.get_home_tricks(locale, session_id, detector, settings, db)


@router.get(
    "/{locale}/home-load-tricks/{offset}",
    response_model=TrickListResponse,
    summary="Load more tricks",
    description="Next trick batch with the default number per loading.",
    responses={403: _403},
    dependencies=[Depends(require_ajax)],
)
@router.get(
    "/{locale}/home-load-tricks/{offset}/{limit}",
    response_model=TrickListResponse,
    summary="Load more tricks with an explicit limit",
    description=(
        "Next trick batch. Out-of-range parameters are clamped; unusable ones "
        "reset the list to its first batch and set `error`."
    ),
    responses={403: _403},
    dependencies=[Depends(require_ajax)],
)
async def load_more_tricks(
    offset: int,
    limit: int | None = None,
    locale: str = _LOCALE,
    session_id: str = Depends(get_list_session),
    detector: OutdatedCountDetector = Depends(get_outdated_count_detector),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
) -> TrickListResponse:
    return await controller.load_more_tricks(offset, limit, session_id, detector, settings, db)


@router.get(
    "/{locale}/trick-list/page/{page}",
    response_model=TrickPageResponse,
    summary="Trick list page",
    description="Page-number trick list. Returns 404 outside `1..page_count`.",
    responses={404: _404},
)
async def trick_page(
    page: int,
    locale: str = _LOCALE,
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
) -> TrickPageResponse:
    return await controller.get_trick_page(page, settings, db)


# ---------------------------------------------------------------------------
# Comment list
# ---------------------------------------------------------------------------


@router.get(
    "/tricks/{trick_token}/comments",
    response_model=TrickCommentsResponse,
    summary="Trick comment list",
    description="First batch of a trick's comment list with its loading parameters.",
    responses={404: _404},
)
async def trick_comments(
    trick_token: str,
    session_id: str = Depends(get_list_session),
    detector: OutdatedCountDetector = Depends(get_outdated_count_detector),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
) -> TrickCommentsResponse:
    return await controller.get_trick_comments(trick_token, session_id, detector, settings, db)


@router.get(
    "/load-trick-comments/{trick_token}/{offset}",
    response_model=CommentListResponse,
    summary="Load more comments",
    responses={403: _403, 404: _404},
    dependencies=[Depends(require_ajax)],
)
@router.get(
    "/load-trick-comments/{trick_token}/{offset}/{limit}",
    response_model=CommentListResponse,
    summary="Load more comments with an explicit limit",
    description=(
        "Next batch of first-level comments with their replies. Each comment "
        "carries its `rank`; replies are ranked by the configured policy."
    ),
    responses={403: _403, 404: _404},
    dependencies=[Depends(require_ajax)],
)
async def load_more_comments(
    trick_token: str,
    offset: int,
    limit: int | None = None,
    session_id: str = Depends(get_list_session),
    detector: OutdatedCountDetector = Depends(get_outdated_count_detector),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
) -> CommentListResponse:
    return await controller.load_more_comments(
        trick_token, offset, limit, session_id, detector, settings, db
    )
