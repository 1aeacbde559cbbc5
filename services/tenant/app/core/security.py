import os
from datetime import datetime, timedelta, timezone

from jose import jwt

# lidas tanto em CI quanto em "prod"
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS512")
ACCESS_TOKEN_EXPIRE_HOURS = int(os.getenv("ACCESS_TOKEN_EXPIRE_HOURS", "24"))

PLATFORM_ADMIN = "platform_admin"


def criar_token_jwt(subject: str, user_type: str = PLATFORM_ADMIN) -> str:
    expire = datetime.now(timezone.utc) + timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS)
    to_encode = {
        "exp": expire,
        "sub": str(subject),     # id do operador
        "user_type": user_type,  # "platform_admin" para rotas de administração
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)
