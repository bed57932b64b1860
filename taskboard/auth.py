import base64
import json

from fastapi import Header, HTTPException


def _jwt_subject(token: str) -> str | None:
    # Signature is verified upstream; only the ``sub`` claim is read here.
    parts = token.split(".")
    if len(parts) != 3:
        return None
    try:
        payload = base64.urlsafe_b64decode(parts[1] + "=" * (-len(parts[1]) % 4))
        data = json.loads(payload.decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    sub = data.get("sub") if isinstance(data, dict) else None
    return str(sub) if sub is not None else None


def get_current_user(authorization: str = Header(...)) -> str:
    """Resolve the acting user from the bearer token.

    A token without dots is the user identifier itself (local/dev); otherwise
    it is treated as a JWT and its ``sub`` claim is the user identifier.
    """
    prefix = "Bearer "
    if not authorization.startswith(prefix):
        raise HTTPException(status_code=401, detail="invalid_token")
    token = authorization[len(prefix) :].strip()
    user_id = token if token and "." not in token else _jwt_subject(token)
    if not user_id:
        raise HTTPException(status_code=401, detail="invalid_token")
    return user_id
