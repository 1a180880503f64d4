# users/serializers.py

from django.contrib.auth import get_user_model
from rest_framework import serializers

from permissions.roles import capabilities_for

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """
    Safe user representation for frontend consumption.
    """

    capabilities = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "full_name",
            "role",
            "dealership",
            "manufacturer",
            "capabilities",
        ]
        read_only_fields = fields

    def get_capabilities(self, obj):
        return sorted(capabilities_for(obj))
