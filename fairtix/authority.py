from abc import ABC, abstractmethod

from .models import User


class Authority(ABC):
    """Decides which principals may run privileged operations."""

    @abstractmethod
    def is_administrator(self, principal):
        pass


class RoleAuthority(Authority):
    """Administrators are active accounts whose role is in ``roles``."""

    def __init__(self, roles=('admin',)):
        self.roles = tuple(roles)

    def is_administrator(self, principal):
        user = User.query.filter_by(wallet_address=principal).first()
        return bool(user and user.is_active and user.role in self.roles)
