# Domain exceptions raised by the listing service layer.
# The controller layer catches these and converts them to HTTPException.


class TrickNotFoundError(Exception):
    def __init__(self, trick_id) -> None:
        self.trick_id = trick_id
        super().__init__(f"Trick {trick_id} not found")


class InvalidTokenError(Exception):
    """Raised when an identifier token from the URL cannot be decoded."""

    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__(f"Invalid identifier token {token!r}")

