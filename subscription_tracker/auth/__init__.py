"""Authentication / authorization helpers.

Auth is kept lightweight:

- Users table (name / email / password hash)
- Stateless JWT access tokens sent as `Authorization: Bearer <token>`

Signing out is client-side: the client drops its token. There is no
server-side revocation list.
"""

from .deps import get_config, get_current_user
from .service import authenticate_user, register_user

__all__ = [
    "get_config",
    "get_current_user",
    "authenticate_user",
    "register_user",
]
