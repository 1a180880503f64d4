# users/views.py

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle
from rest_framework.views import APIView

from .serializers import UserSerializer


class MeUserThrottle(UserRateThrottle):
    scope = "user"


# ---------------- CURRENT USER ----------------
class MeView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [MeUserThrottle]
    serializer_class = UserSerializer

    @extend_schema(
        tags=["Auth"],
        responses={200: UserSerializer},
        description="Current user profile with effective capabilities",
    )
    def get(self, request):
        return Response(
            {
                "authenticated": True,
                "user": UserSerializer(request.user).data,
            },
            status=status.HTTP_200_OK,
        )
