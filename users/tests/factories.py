import factory
from common.choices import UserRole
from django.contrib.auth import get_user_model
from factory.django import DjangoModelFactory
from users.models import SellerProfile, VetProfile


class UserFactory(DjangoModelFactory):
    class Meta:
        model = get_user_model()

    username = factory.Sequence(lambda n: f"user{n}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    password = factory.PostGenerationMethodCall("set_password", "pass")
    role = UserRole.CUSTOMER


class SellerFactory(UserFactory):
    role = UserRole.SELLER


class AdminFactory(UserFactory):
    role = UserRole.ADMIN


class SellerProfileFactory(DjangoModelFactory):
    class Meta:
        model = SellerProfile

    user = factory.SubFactory(SellerFactory)
    business_name = factory.Faker("company")
    tax_id = factory.Faker("bothify", text="TAX-#####")


class VetProfileFactory(DjangoModelFactory):
    class Meta:
        model = VetProfile

    user = factory.SubFactory(UserFactory, role=UserRole.VET)
    clinic_name = factory.Faker("company")
    license_number = factory.Faker("bothify", text="VET-####")
    specialization = "small animals"
