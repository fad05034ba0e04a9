from pydantic import BaseModel


class ActionResult(BaseModel):
    """Outcome of a mutating operation, shown to the user as a toast."""

    success: str


class RedirectResult(ActionResult):
    """ActionResult that also carries a URL the client should navigate to."""

    url: str
