"""User models for authentication and role-specific profiles.

Role data is modelled as a tagged variant: the `role` field is the tag and
each role that carries extra data has its own one-to-one profile table.
`User.profile` returns the variant for the user's role, or None.
"""

from common.choices import UserRole
from django.contrib.auth.models import AbstractUser
from django.core.validators import RegexValidator
from django.db import models

phone_validator = RegexValidator(r"^\+?[1-9]\d{1,14}$", message="Use E.164 format (e.g., +14155552671)")


class User(AbstractUser):
    """Custom user with unique email and a marketplace role."""

    email = models.EmailField(unique=True)
    role = models.CharField(max_length=16, choices=UserRole.choices, default=UserRole.CUSTOMER, db_index=True)
    phone = models.CharField(max_length=16, blank=True, validators=[phone_validator])

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.strip().lower()
        if self.phone:
            self.phone = self.phone.strip()
        super().save(*args, **kwargs)

    @property
    def is_marketplace_admin(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.CO_ADMIN)

    @property
    def profile(self):
        """Return the role-specific profile variant, if the role has one."""

        accessor = PROFILE_ACCESSORS.get(self.role)
        if accessor is None:
            return None
        return getattr(self, accessor, None)


class SellerProfile(models.Model):
    user = models.OneToOneField(User, related_name="seller_profile", on_delete=models.CASCADE)
    business_name = models.CharField(max_length=200)
    tax_id = models.CharField(max_length=64, blank=True)

    def __str__(self) -> str:  # pragma: no cover
        return self.business_name


class VetProfile(models.Model):
    user = models.OneToOneField(User, related_name="vet_profile", on_delete=models.CASCADE)
    clinic_name = models.CharField(max_length=200)
    license_number = models.CharField(max_length=64)
    specialization = models.CharField(max_length=120, blank=True)

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.clinic_name} ({self.license_number})"


PROFILE_ACCESSORS = {
    UserRole.SELLER: "seller_profile",
    UserRole.VET: "vet_profile",
}
