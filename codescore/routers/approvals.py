"""
Admin decision links: GET /api/approvals/decide?token=...&action=approve|deny
The token in the emailed link is the only credential. Responds with a small HTML page.
"""
import html
import logging
from datetime import datetime
from fastapi import APIRouter, Depends, status
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session
from codescore.config import get_settings
from codescore.database import get_db
from codescore.errors import (
    AccountCreationError,
    AccountExistsError,
    InvalidOrExpiredTokenError,
    ProviderError,
    ValidationError,
    WeakCredentialError,
)
from codescore.services.approval_service import decide
from codescore.services.notifications import NotificationDispatcher, get_dispatcher
from codescore.services.provisioner import LocalAccountProvisioner, get_provisioner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/approvals", tags=["approvals"])


def _page(title: str, body: str, status_code: int = 200) -> HTMLResponse:
    content = (
        '<html><body style="font-family: Arial, sans-serif; max-width: 600px; margin: 50px auto; padding: 20px;">'
        f"<h1>{html.escape(title)}</h1>{body}</body></html>"
    )
    return HTMLResponse(content=content, status_code=status_code)


def _p(text: str) -> str:
    return f"<p>{html.escape(text)}</p>"


@router.get("/decide", response_class=HTMLResponse)
def decide_from_link(
    token: str | None = None,
    action: str | None = None,
    db: Session = Depends(get_db),
    provisioner: LocalAccountProvisioner = Depends(get_provisioner),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    if not token or not action:
        return _page("Invalid Request", _p("Missing token or action parameter."), status.HTTP_400_BAD_REQUEST)

    admin = get_settings().admin_email
    try:
        result = decide(db, token, action, admin, provisioner, dispatcher)
    except ValidationError as e:
        return _page("Invalid Request", _p(e.message), status.HTTP_400_BAD_REQUEST)
    except InvalidOrExpiredTokenError:
        return _page(
            "Invalid Token",
            _p("Approval request not found or already processed."),
            status.HTTP_404_NOT_FOUND,
        )
    except (AccountExistsError, WeakCredentialError) as e:
        return _page(
            "Error Creating User",
            _p(e.message) + _p("The request is still pending."),
            status.HTTP_409_CONFLICT,
        )
    except (AccountCreationError, ProviderError) as e:
        return _page("Error Creating User", _p(e.message), status.HTTP_500_INTERNAL_SERVER_ERROR)

    approved = result.action == "approve"
    message = (
        f"User {result.email} has been approved and can now sign in!"
        if approved
        else f"User {result.email} has been denied access."
    )
    body = (
        _p(message)
        + _p(f"Email: {result.email}")
        + _p(f"Action: {result.action.capitalize()}")
        + _p(f"Time: {datetime.utcnow().strftime('%Y-%m-%d %H:%M')} UTC")
    )
    return _page("Approved!" if approved else "Denied", body)
