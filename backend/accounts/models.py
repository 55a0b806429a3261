from django.contrib.auth.models import AbstractUser
from django.db import models

from core.roles import CUSTOMER, OWNER, ROLES, is_owner_role


class User(AbstractUser):
    CUSTOMER = CUSTOMER
    OWNER = OWNER

    display_name = models.CharField(max_length=120, blank=True)
    role = models.CharField(max_length=20, choices=ROLES, default=CUSTOMER)

    @property
    def is_owner(self) -> bool:
        return is_owner_role(self.role)
