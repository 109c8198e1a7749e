"""Listing controller: orchestration layer between router and service.

Resolves the requested window, checks the visitor's count snapshot, fetches and
ranks the batch, then builds the response. Domain exceptions become HTTP errors
here.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.exceptions import NotFoundError
from app.listing import constants, service
from app.listing.cache import TRICK_SCOPE, comment_scope
from app.listing.exceptions import InvalidTokenError, TrickNotFoundError
from app.listing.schemas import (
    CommentListResponse,
    HomeTrickListResponse,
    ListNotices,
    TrickCard,
    TrickCommentsResponse,
    TrickListResponse,
    TrickPageResponse,
)
from app.listing.staleness import OutdatedCountDetector
from app.pagination import (
    Adjustment,
    ResolvedWindow,
    decode_uuid,
    encode_uuid,
    initial_window,
    page_parameters,
    resolve_window,
)
from shared.models.pagination import SortDirection

logger = logging.getLogger(__name__)

_TRICK_NOTICES = ListNotices(
    list_ended=constants.TRICK_LIST_ENDED,
    no_list=constants.TRICK_NO_LIST,
    technical_error=constants.TRICK_TECHNICAL_ERROR,
)
_COMMENT_NOTICES = ListNotices(
    list_ended=constants.COMMENT_LIST_ENDED,
    no_list=constants.COMMENT_NO_LIST,
    technical_error=constants.COMMENT_TECHNICAL_ERROR,
)


def _decode_trick_token(trick_token: str) -> UUID:
    try:
        return decode_uuid(trick_token)
    except ValueError as exc:
        raise InvalidTokenError(trick_token) from exc


def _log_adjustment(scope: str, offset: int, limit: int | None, resolved: ResolvedWindow) -> None:
    if resolved.adjustment is Adjustment.NONE:
        return
    logger.warning(
        "List window %s for scope %s by rule %s: requested offset=%s limit=%s, "
        "resolved offset=%s limit=%s count=%s",
        resolved.adjustment.value.lower(),
        scope,
        resolved.rule,
        offset,
        limit,
        resolved.offset,
        resolved.limit,
        resolved.count,
    )


async def _resolve_load_more(
    *,
    scope: str,
    offset: int,
    limit: int | None,
    count: int,
    direction: SortDirection,
    default_limit: int,
    session_id: str,
    detector: OutdatedCountDetector,
    outdated_notice: str,
    parameters_notice: str,
) -> tuple[ResolvedWindow, str | None]:
    """Return the window to serve and the reinitialization notice, if any."""
    if await detector.is_outdated(session_id, scope, count):
        return initial_window(direction, count, default_limit), outdated_notice
    resolved = resolve_window(offset, limit, direction, count, default_limit)
    _log_adjustment(scope, offset, limit, resolved)
    return resolved, parameters_notice if resolved.error else None


# ---------------------------------------------------------------------------
# Trick list
# ---------------------------------------------------------------------------


async def get_home_tricks(
    locale: str,
    session_id: str,
    detector: OutdatedCountDetector,
    settings: Settings,
    db: AsyncSession,
) -> HomeTrickListResponse:
    count = await service.count_tricks(db)
    resolved = initial_window(
        settings.trick_loading_mode, count, settings.trick_number_per_loading
    )
    ranked = await service.fetch_ranked_tricks(resolved.window, db)
    await detector.remember(session_id, TRICK_SCOPE, count)
    return HomeTrickListResponse.build(
        ranked,
        resolved,
        loading_mode=settings.trick_loading_mode,
        number_per_loading=settings.trick_number_per_loading,
        load_path=f"/{locale}/home-load-tricks",
        notices=_TRICK_NOTICES,
    )


async def load_more_tricks(
    offset: int,
    limit: int | None,
    session_id: str,
    detector: OutdatedCountDetector,
    settings: Settings,
    db: AsyncSession,
) -> TrickListResponse:
    count = await service.count_tricks(db)
    resolved, notice = await _resolve_load_more(
        scope=TRICK_SCOPE,
        offset=offset,
        limit=limit,
        count=count,
        direction=settings.trick_loading_mode,
        default_limit=settings.trick_number_per_loading,
        session_id=session_id,
        detector=detector,
        outdated_notice=constants.TRICK_LIST_RESET_OUTDATED,
        parameters_notice=constants.TRICK_LIST_RESET_PARAMETERS,
    )
    ranked = await service.fetch_ranked_tricks(resolved.window, db)
    return TrickListResponse.build(ranked, resolved, error=notice)


async def get_trick_page(page: int, settings: Settings, db: AsyncSession) -> TrickPageResponse:
    count = await service.count_tricks(db)
    parameters = page_parameters(
        page, count, settings.trick_number_per_page, settings.trick_loading_mode
    )
    if parameters is None:
        raise NotFoundError("Trick list page")
    ranked = await service.fetch_ranked_tricks(parameters.window, db) if count else []
    return TrickPageResponse(
        items=[TrickCard.from_ranked(node) for node in ranked],
        total=count,
        page=parameters.page,
        page_size=parameters.page_size,
        page_count=parameters.page_count,
        direction=parameters.window.direction,
        offset=parameters.window.offset,
        limit=parameters.window.limit,
    )


# ---------------------------------------------------------------------------
# Comment list
# ---------------------------------------------------------------------------


async def get_trick_comments(
    trick_token: str,
    session_id: str,
    detector: OutdatedCountDetector,
    settings: Settings,
    db: AsyncSession,
) -> TrickCommentsResponse:
    try:
        trick = await service.get_trick(_decode_trick_token(trick_token), db)
    except (InvalidTokenError, TrickNotFoundError):
        raise NotFoundError("Trick")
    count = await service.count_root_comments(trick.trick_id, db)
    resolved = initial_window(
        settings.comment_loading_mode, count, settings.comment_number_per_loading
    )
    ranked = await service.fetch_ranked_comments(
        trick.trick_id, resolved.window, db, settings.reply_rank_policy
    )
    await detector.remember(session_id, comment_scope(trick.trick_id), count)
    return TrickCommentsResponse.build(
        trick.trick_id,
        ranked,
        resolved,
        await service.count_comments(trick.trick_id, db),
        loading_mode=settings.comment_loading_mode,
        number_per_loading=settings.comment_number_per_loading,
        load_path=f"/load-trick-comments/{encode_uuid(trick.trick_id)}",
        notices=_COMMENT_NOTICES,
    )


async def load_more_comments(
    trick_token: str,
    offset: int,
    limit: int | None,
    session_id: str,
    detector: OutdatedCountDetector,
    settings: Settings,
    db: AsyncSession,
) -> CommentListResponse:
    try:
        trick = await service.get_trick(_decode_trick_token(trick_token), db)
    except (InvalidTokenError, TrickNotFoundError):
        raise NotFoundError("Trick")
    count = await service.count_root_comments(trick.trick_id, db)
    resolved, notice = await _resolve_load_more(
        scope=comment_scope(trick.trick_id),
        offset=offset,
        limit=limit,
        count=count,
        direction=settings.comment_loading_mode,
        default_limit=settings.comment_number_per_loading,
        session_id=session_id,
        detector=detector,
        outdated_notice=constants.COMMENT_LIST_RESET_OUTDATED,
        parameters_notice=constants.COMMENT_LIST_RESET_PARAMETERS,
    )
    ranked = await service.fetch_ranked_comments(
        trick.trick_id, resolved.window, db, settings.reply_rank_policy
    )
    return CommentListResponse.build(
        trick.trick_id,
        ranked,
        resolved,
        await service.count_comments(trick.trick_id, db),
        error=notice,
    )
