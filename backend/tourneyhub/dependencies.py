from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from .database import get_session
from .errors import Unauthenticated
from .models import User
from .security import decode_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
) -> User:
    if not token:
        raise Unauthenticated()

    try:
        payload = decode_token(token)
    except ValueError:
        raise Unauthenticated() from None

    sub = payload.get("sub")
    if not sub:
        raise Unauthenticated()

    statement = select(User).where(User.id == sub)
    result = await session.execute(statement)
    user = result.scalar_one_or_none()

    if not user:
        raise Unauthenticated()

    return user
