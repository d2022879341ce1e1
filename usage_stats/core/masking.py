"""
Credential masking.

Reduces raw API credentials to a display-safe key so that raw secrets
never reach persisted state.
"""

MASK = "******"
VISIBLE_PREFIX = 6


def mask_credential(credential: str) -> str:
    """Mask a credential down to its first six characters.

    Credentials of six characters or fewer collapse to the bare mask.
    Distinct credentials that share a prefix map to the same key.

    Args:
        credential: Raw credential string

    Returns:
        Masked key safe to display and persist
    """
    if len(credential) <= VISIBLE_PREFIX:
        return MASK
    return credential[:VISIBLE_PREFIX] + MASK
