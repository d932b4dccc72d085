import logging

from django.contrib.auth import get_user_model
from django.contrib.auth.tokens import default_token_generator
from django.db import transaction
from django.utils.encoding import force_bytes, force_str
from django.utils.http import urlsafe_base64_decode, urlsafe_base64_encode
from kombu.exceptions import OperationalError
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from common.tasks import send_password_reset_email

from .serializers import (
    ForgotPasswordSerializer,
    PusaraTokenObtainPairSerializer,
    RegisterUserSerializer,
    ResetPasswordSerializer,
    UserSerializer,
)

log = logging.getLogger(__name__)

User = get_user_model()


class RegisterUserView(APIView):
    """
    POST /api/accounts/register/
      body: { username, password, confirm_password, email, first_name?, last_name?, phone? }
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        ser = RegisterUserSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        user = ser.save()
        log.info("Registered user %s", user.pk)
        return Response(
            {"message": "Pendaftaran berjaya.", "user": UserSerializer(user).data},
            status=status.HTTP_201_CREATED,
        )


class PusaraTokenObtainPairView(TokenObtainPairView):
    serializer_class = PusaraTokenObtainPairSerializer


class MeView(APIView):
    """
    GET   /api/accounts/users/me/
    PATCH /api/accounts/users/me/
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)

    def patch(self, request):
        ser = UserSerializer(request.user, data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        ser.save()
        return Response(ser.data, status=status.HTTP_200_OK)


class ForgotPasswordView(APIView):
    """
    POST /api/accounts/forgot-password/  { email }
    Always answers 200 so the endpoint cannot reveal which emails are registered.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        ser = ForgotPasswordSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        email = ser.validated_data["email"]

        user = User.objects.filter(email__iexact=email, is_active=True).first()
        if user is not None:
            uid = urlsafe_base64_encode(force_bytes(user.pk))
            token = default_token_generator.make_token(user)
            user_id = user.pk

            def _queue():
                try:
                    send_password_reset_email.delay(user_id, uid, token)
                except OperationalError:
                    log.warning("Could not queue password reset email for user %s", user_id, exc_info=True)

            transaction.on_commit(_queue, robust=True)

        return Response(
            {"message": "Jika emel wujud, pautan set semula kata laluan telah dihantar."},
            status=status.HTTP_200_OK,
        )


class ResetPasswordView(APIView):
    """
    POST /api/accounts/reset-password/  { uid, token, password, confirm_password }
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        ser = ResetPasswordSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        try:
            pk = force_str(urlsafe_base64_decode(data["uid"]))
            user = User.objects.get(pk=pk, is_active=True)
        except (TypeError, ValueError, OverflowError, User.DoesNotExist):
            user = None

        if user is None or not default_token_generator.check_token(user, data["token"]):
            raise ValidationError("Pautan set semula tidak sah atau telah tamat tempoh.")

        user.set_password(data["password"])
        user.save(update_fields=["password"])
        log.info("Password reset for user %s", user.pk)

        return Response(
            {"message": "Kata laluan berjaya ditukar."},
            status=status.HTTP_200_OK,
        )
