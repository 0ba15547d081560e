from fastapi import Header, Request
from jose import ExpiredSignatureError, JWTError, jwt

from storefront.errors import AuthError


def verify_token(request: Request, authorization: str = Header(None)):
    if not authorization:
        raise AuthError("Access token required")

    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError(scheme)
    except ValueError:
        raise AuthError("Invalid or missing token")

    secret = request.app.state.context.settings.jwt_secret
    if not secret:
        raise AuthError("Invalid or missing token")

    try:
        return jwt.decode(token, secret, algorithms=["HS256"])
    except ExpiredSignatureError:
        raise AuthError("Token has expired", code="token_expired")
    except JWTError:
        raise AuthError("Invalid or missing token")
