from .hs256_jwt_codec import Hs256JwtCodec

__all__ = ["Hs256JwtCodec"]
