from rest_framework import serializers


class LoginSerializer(serializers.Serializer):
    email = serializers.CharField(required=False, allow_blank=True)
    password = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)

    def validate_email(self, v):
        return (v or '').strip()
