from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel, ValidationError

from app.core.security import JWT_ALGORITHM, PLATFORM_ADMIN, SECRET_KEY

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/users/login")


class TokenPayload(BaseModel):
    sub: str
    user_type: Optional[str] = None


def get_current_token(
    token: str = Depends(oauth2_scheme),
) -> TokenPayload:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
        return TokenPayload(**payload)
    except (JWTError, ValidationError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Credenciais inválidas",
        )


def require_platform_admin(
    current_token: TokenPayload = Depends(get_current_token),
) -> TokenPayload:
    # só operadores da plataforma criam, provisionam ou removem tenants
    if current_token.user_type != PLATFORM_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Apenas administradores da plataforma podem gerenciar tenants.",
        )
    return current_token
