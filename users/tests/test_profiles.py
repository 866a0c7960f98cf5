import pytest
from common.choices import UserRole
from rest_framework.test import APIClient
from users.tests.factories import SellerProfileFactory, UserFactory, VetProfileFactory


@pytest.mark.django_db
def test_profile_variant_follows_role():
    seller = SellerProfileFactory().user
    vet = VetProfileFactory().user
    customer = UserFactory()

    assert seller.profile.business_name
    assert vet.profile.license_number.startswith("VET-")
    assert customer.profile is None


@pytest.mark.django_db
def test_seller_without_profile_row_has_no_profile():
    user = UserFactory(role=UserRole.SELLER)

    assert user.profile is None


@pytest.mark.django_db
def test_email_is_normalized_on_save():
    user = UserFactory(email="  Pet.Owner@Example.COM ")

    assert user.email == "pet.owner@example.com"


@pytest.mark.django_db
def test_token_then_me_returns_tagged_profile():
    profile = SellerProfileFactory(business_name="Happy Paws")
    client = APIClient()

    resp = client.post(
        "/api/v1/auth/token/",
        {"username": profile.user.username, "password": "pass"},
        format="json",
    )
    assert resp.status_code == 200

    client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.data['access']}")
    me = client.get("/api/v1/users/me/")
    assert me.status_code == 200
    assert me.data["role"] == UserRole.SELLER
    assert me.data["profile"]["type"] == UserRole.SELLER
    assert me.data["profile"]["business_name"] == "Happy Paws"


@pytest.mark.django_db
def test_me_for_customer_has_null_profile():
    client = APIClient()
    client.force_authenticate(user=UserFactory())

    assert client.get("/api/v1/users/me/").data["profile"] is None


@pytest.mark.django_db
def test_bad_credentials_are_rejected():
    user = UserFactory()

    resp = APIClient().post(
        "/api/v1/auth/token/",
        {"username": user.username, "password": "wrong"},
        format="json",
    )

    assert resp.status_code == 401


def test_me_requires_authentication(db):
    assert APIClient().get("/api/v1/users/me/").status_code in (401, 403)
