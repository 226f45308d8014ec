from .bearer_token_current_user import BearerTokenCurrentUser

__all__ = ["BearerTokenCurrentUser"]
