"""Backend error response schema."""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Error body returned by the backend on non-success statuses."""

    error: str | None = None
    message: str | None = None

    @property
    def detail(self) -> str | None:
        """Best human-readable description available."""
        return self.error or self.message
