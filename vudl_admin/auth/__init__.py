from .dependencies import verify_token

__all__ = ["verify_token"]
