"""Identity resolution."""

from leadline.services.identity.resolver import IdentityResolver, normalize_phone

__all__ = ["IdentityResolver", "normalize_phone"]
