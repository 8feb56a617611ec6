from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import strawberry
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ...auth.cookies import clear_session_cookie, start_session
from ...auth.passwords import generate_reset_token, hash_password, verify_password
from ...config import get_reset_url, settings
from ...database.connection import get_async_session
from ...dbmodels import Users
from ...errors import AuthError, NotFoundError, ValidationError
from ...logging import get_logger
from ...mail import MailDeliveryError, make_reset_email
from ..access_control import (
    get_auth_context_from_info,
    get_mailer_from_info,
    get_response_from_info,
)
from ..types.common import SuccessMessage
from ..types.user import Permission
from .user import to_user_type

if TYPE_CHECKING:
    from ..types.user import User

logger = get_logger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def _find_user_by_email(email: str) -> Users | None:
    async with get_async_session() as session:
        result = await session.execute(select(Users).where(Users.email == email))
        return result.scalar_one_or_none()


# Query resolvers
async def resolve_current_user(info: strawberry.Info) -> User | None:
    """Return the signed-in user, or None for anonymous requests."""
    auth_context = get_auth_context_from_info(info)
    if not auth_context.is_authenticated:
        return None

    async with get_async_session() as session:
        user = await session.get(Users, auth_context.user_id)
        return to_user_type(user) if user else None


# Mutation resolvers
async def signup(info: strawberry.Info, email: str, password: str, name: str) -> User:
    """
    Create an account and sign the new user in.

    The email is stored lowercase and the password only as a bcrypt hash. New
    users get the USER permission.
    """
    email = normalize_email(email)
    hashed = await hash_password(password)

    try:
        async with get_async_session() as session:
            user = Users(
                email=email,
                name=name,
                password=hashed,
                permissions=[Permission.USER.value],
            )
            session.add(user)
            await session.flush()
    except IntegrityError as e:
        logger.info("Signup rejected, email already registered")
        raise ValidationError(f"An account already exists for {email}") from e

    start_session(get_response_from_info(info), user.id)
    logger.info("User signed up", user_id=str(user.id))

    return to_user_type(user)


async def signin(info: strawberry.Info, email: str, password: str) -> User:
    """Check credentials and start a session."""
    email = normalize_email(email)

    user = await _find_user_by_email(email)
    if user is None:
        raise NotFoundError(f"No such user found for email {email}")

    if not await verify_password(password, user.password):
        logger.info("Sign in rejected, wrong password", user_id=str(user.id))
        raise AuthError("Invalid Password!")

    start_session(get_response_from_info(info), user.id)
    logger.info("User signed in", user_id=str(user.id))

    return to_user_type(user)


async def signout(info: strawberry.Info) -> SuccessMessage:
    clear_session_cookie(get_response_from_info(info))
    return SuccessMessage(message="Goodbye!")


async def request_reset(info: strawberry.Info, email: str) -> SuccessMessage:
    """
    Issue a one-hour password reset token and email the reset link.

    A delivery failure is logged but does not fail the request; the token stays
    valid so the user can ask again or an operator can resend it.
    """
    email = normalize_email(email)
    reset_token = generate_reset_token()
    reset_token_expiry = datetime.now(UTC) + timedelta(seconds=settings.reset_token_ttl_seconds)

    async with get_async_session() as session:
        result = await session.execute(select(Users).where(Users.email == email))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError(f"No such user found for email {email}")

        user.reset_token = reset_token
        user.reset_token_expiry = reset_token_expiry
        user_id = user.id

    mailer = get_mailer_from_info(info)
    try:
        await mailer.send_mail(
            to=email,
            subject="Your Password Reset Token",
            html=make_reset_email(get_reset_url(reset_token)),
        )
    except MailDeliveryError as e:
        logger.error("Password reset email not delivered", user_id=str(user_id), error=str(e))
    else:
        logger.info("Password reset requested", user_id=str(user_id))

    return SuccessMessage(message="Thanks!")


async def reset_password(
    info: strawberry.Info, reset_token: str, password: str, confirm_password: str
) -> User:
    """
    Set a new password using an unexpired reset token, then sign the user in.

    The token and its expiry are cleared so the token cannot be reused.
    """
    if password != confirm_password:
        raise ValidationError("Your passwords don't match!")

    now = datetime.now(UTC)

    async with get_async_session() as session:
        result = await session.execute(
            select(Users).where(
                Users.reset_token == reset_token,
                Users.reset_token_expiry > now,
            )
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise AuthError("This token is either invalid or expired!")

        user.password = await hash_password(password)
        user.reset_token = None
        user.reset_token_expiry = None
        await session.flush()

    start_session(get_response_from_info(info), user.id)
    logger.info("Password reset", user_id=str(user.id))

    return to_user_type(user)
