from fastapi import Header, HTTPException, status


def get_actor(x_user_email: str | None = Header(default=None)) -> str | None:
    """
    DEV AUTH: the X-User-Email header names who is changing the schema.
    Anonymous requests are allowed; their audit records carry no actor.
    """
    if x_user_email is None:
        return None
    actor = x_user_email.strip()
    if not actor or "@" not in actor:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Malformed X-User-Email header (dev auth)",
        )
    return actor
