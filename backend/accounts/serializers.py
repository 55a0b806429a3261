from django.contrib.auth import get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from core.roles import CUSTOMER, parse_role

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["id", "email", "first_name", "last_name", "display_name", "role"]
        read_only_fields = ["id", "email", "role"]


class RoleField(serializers.CharField):
    """Accept any casing or alias of a role and store the canonical value."""

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        try:
            return parse_role(value)
        except ValueError as exc:
            raise serializers.ValidationError(str(exc))


class RegisterSerializer(serializers.ModelSerializer):
    """Sign up as a customer or as a listing owner."""

    password = serializers.CharField(write_only=True, min_length=8, style={"input_type": "password"})
    role = RoleField(required=False, default=CUSTOMER)

    class Meta:
        model = User
        fields = ["email", "password", "first_name", "last_name", "display_name", "role"]
        extra_kwargs = {"email": {"required": True, "allow_blank": False}}

    def validate_email(self, value: str) -> str:
        email = value.lower()
        if User.objects.filter(email__iexact=email).exists():
            raise serializers.ValidationError("An account with this email already exists.")
        return email

    def create(self, validated_data):
        email = validated_data["email"]
        full_name = f"{validated_data.get('first_name', '')} {validated_data.get('last_name', '')}".strip()
        validated_data.setdefault("display_name", "")
        if not validated_data["display_name"]:
            validated_data["display_name"] = full_name or email
        # username mirrors the email
        return User.objects.create_user(username=email, **validated_data)


class EmailTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Log in with email and password; issued tokens carry the user's role."""

    email = serializers.EmailField(write_only=True)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields.pop(self.username_field, None)

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token["role"] = user.role
        return token

    def validate(self, attrs):
        attrs[self.username_field] = attrs.pop("email").lower()
        data = super().validate(attrs)
        data["user"] = UserSerializer(self.user).data
        return data


class ProfileUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["first_name", "last_name", "display_name"]
