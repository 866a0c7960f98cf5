"""Serializers for the current user's profile."""

from rest_framework import serializers

from .models import SellerProfile, User, VetProfile


class SellerProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = SellerProfile
        fields = ["business_name", "tax_id"]


class VetProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model = VetProfile
        fields = ["clinic_name", "license_number", "specialization"]


PROFILE_SERIALIZERS = {
    SellerProfile: SellerProfileSerializer,
    VetProfile: VetProfileSerializer,
}


class UserMeSerializer(serializers.ModelSerializer):
    """Basic profile fields plus the role-specific profile, if any."""

    profile = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "username", "email", "first_name", "last_name", "role", "phone", "profile"]

    def get_profile(self, obj: User) -> dict | None:
        profile = obj.profile
        if profile is None:
            return None
        return {"type": obj.role, **PROFILE_SERIALIZERS[type(profile)](profile).data}
