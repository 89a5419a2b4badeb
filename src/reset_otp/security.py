"""Password hashing and identity masking helpers."""

import bcrypt


def hash_password(plain: str) -> str:
    """Hash a plaintext password with a freshly generated bcrypt salt."""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def mask_identity(identity: str | None) -> str:
    """Mask an email or phone for display and logs.

    ``john@example.com`` → ``j***n@example.com``; phones keep their last
    4 characters: ``***7890``.
    """
    if not identity:
        return "***"
    if "@" not in identity:
        return "***" + identity[-4:] if len(identity) > 4 else "***"
    local, domain = identity.split("@", 1)
    if len(local) <= 2:
        masked_local = local[:1] + "***"
    else:
        masked_local = local[0] + "***" + local[-1]
    return f"{masked_local}@{domain}"
