# Users module
from crowdlend.modules.users.models import User
from crowdlend.modules.users.services import UserService

__all__ = ["User", "UserService"]
