# Admin module
from crowdlend.modules.admin.models import AdminAuditLog, AdminAction

__all__ = ["AdminAuditLog", "AdminAction"]
