import jwt
from fastapi import Request

from academy.config import get_settings
from academy.utils.exceptions import AccessDeniedException, UnauthorizedException


class AuthService:
    @staticmethod
    def get_current_user(request: Request) -> str:
        decoded = AuthService._get_decoded_jwt(request)

        user_id = decoded.get("userId")
        if not user_id:
            raise UnauthorizedException("Invalid token")

        return str(user_id)

    @staticmethod
    def get_user_info(request: Request) -> dict:
        decoded = AuthService._get_decoded_jwt(request)

        user_id = decoded.get("userId")
        if not user_id:
            raise UnauthorizedException("Invalid token")

        roles = decoded.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]

        return {
            "user_id": str(user_id),
            "email": decoded.get("email"),
            "full_name": decoded.get("fullName"),
            "roles": [str(r).lower() for r in roles],
        }

    @staticmethod
    def require_reviewer(request: Request) -> str:
        """Reviewer id for admin/reviewer tokens, AccessDeniedException otherwise."""
        user_info = AuthService.get_user_info(request)
        allowed = {r.lower() for r in get_settings().reviewer_roles}
        if not allowed.intersection(user_info["roles"]):
            raise AccessDeniedException("Reviewer role required")
        return user_info["user_id"]

    @staticmethod
    def _get_decoded_jwt(request: Request) -> dict:
        auth_header = request.headers.get("Authorization")
        if not auth_header:
            raise UnauthorizedException("Authorization header missing")
        if not auth_header.startswith("Bearer "):
            raise UnauthorizedException("Invalid Authorization header format")
        token = auth_header.split(" ")[1]
        # Signature is verified by the gateway
        try:
            decoded = jwt.decode(
                token,
                options={"verify_signature": False}
            )
        except jwt.DecodeError:
            raise UnauthorizedException("Invalid token")
        return decoded
