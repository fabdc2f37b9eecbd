"""
ID token validation package.

Decodes the ID token returned by the token endpoint and runs the ordered
OpenID Connect ID token checks (presence of required claims, issuer,
audience, authorized party, expiry, max-age and nonce).

The token signature is NOT verified: the payload is decoded and trusted
as delivered over the TLS back channel from the token endpoint.
Because PyJWT reads only the three-segment compact form, a token sent
with the signature segment left off entirely (``header.payload``) is
refused as undecodable. An empty third segment is accepted.
"""

from .id_token import IDTokenValidator, decode_id_token

__all__ = ["IDTokenValidator", "decode_id_token"]
