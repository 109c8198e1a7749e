"""HTTP errors of the community service, rendered by the shared error envelope."""

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Unknown trick token, or a trick list page outside ``1..page_count``."""

    def __init__(self, resource: str = "Resource") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=f"{resource} not found.")


class ForbiddenError(HTTPException):
    """AJAX-only endpoint reached by a plain browser request."""

    def __init__(self, detail: str = "Access is not allowed without AJAX request!") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
