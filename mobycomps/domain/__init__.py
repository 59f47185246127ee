from .users.models import User, Role, user_roles
from .competitions.models import Category, Competition
from .tickets.models import Ticket
from .cart.models import CartItem
from .entries.models import Entry
from .payments.models import Payment
from .site_config.models import SiteConfig

__all__ = (
    "User", "Role", "user_roles", "Category", "Competition", "Ticket", "CartItem", "Entry", "Payment", "SiteConfig"
)
