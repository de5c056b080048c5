"""
Account provisioning: turns an approved request into a login-capable User.
Runs inside the caller's transaction (flush only) so the account is committed
together with the approval, or not at all.
"""
import logging
from datetime import datetime
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from codescore.auth import pwd_context
from codescore.errors import AccountExistsError, ProviderError, WeakCredentialError
from codescore.models.user import User, UserRole

logger = logging.getLogger(__name__)


class LocalAccountProvisioner:
    """Identity store backed by the users table."""

    def provision(self, db: Session, email: str, password_hash: str, approved_by: str) -> User:
        if not password_hash or pwd_context.identify(password_hash) is None:
            raise WeakCredentialError("Stored credential is not in a supported format.")

        existing = db.query(User.id).filter(func.lower(User.email) == email.lower()).first()
        if existing:
            raise AccountExistsError(f"An account for {email} already exists.")

        user = User(
            email=email,
            password=password_hash,
            role=UserRole.USER.value,
            approved_by=approved_by,
            approved_at=datetime.utcnow(),
        )
        db.add(user)
        try:
            db.flush()
        except IntegrityError as e:
            raise AccountExistsError(f"An account for {email} already exists.") from e
        except SQLAlchemyError as e:
            logger.exception("Account insert failed for %s", email)
            raise ProviderError("Account store error") from e
        logger.info("Account provisioned for %s (approved by %s)", email, approved_by)
        return user


def get_provisioner() -> LocalAccountProvisioner:
    """FastAPI dependency; overridden in tests."""
    return LocalAccountProvisioner()


def ensure_admin_account(db: Session, email: str, password: str) -> User | None:
    """Create the administrator account on startup if configured and missing. Existing accounts are promoted."""
    if not email or not password:
        return None
    email = email.strip().lower()
    user = db.query(User).filter(func.lower(User.email) == email).first()
    if user:
        if user.role != UserRole.ADMIN.value:
            user.role = UserRole.ADMIN.value
            db.commit()
        return user
    user = User(
        email=email,
        password=pwd_context.hash(password),
        role=UserRole.ADMIN.value,
        approved_by="bootstrap",
        approved_at=datetime.utcnow(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Admin account created for %s", email)
    return user
