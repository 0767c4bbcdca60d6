from pos_backend.models.category import Category
from pos_backend.models.product import Product
from pos_backend.models.modifier import Modifier
from pos_backend.models.modifier_option import ModifierOption
from pos_backend.models.modifier_assignment import ModifierAssignment
from pos_backend.models.staff_user import StaffUser
from pos_backend.models.modifier_audit_log import ModifierAuditLog
