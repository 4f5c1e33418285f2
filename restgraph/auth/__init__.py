"""Credential strategies.

Security notes:
- Authorizers hold secrets. Never log them or put them in exception text.
"""

from .authorizer import Authorizer, is_authorizer
from .tokens import AccessTokenAuthorizer, BearerTokenAuthorizer, appsecret_proof

__all__ = [
    "Authorizer",
    "is_authorizer",
    "AccessTokenAuthorizer",
    "BearerTokenAuthorizer",
    "appsecret_proof",
]
