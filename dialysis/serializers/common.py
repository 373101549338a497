import bleach
from rest_framework import serializers


def clean_text(value):
    """Strip markup from free text typed at the bedside."""
    return bleach.clean((value or '').strip(), tags=[], strip=True)


class CleanTextField(serializers.CharField):
    def __init__(self, **kwargs):
        kwargs.setdefault('required', False)
        kwargs.setdefault('allow_blank', True)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        return clean_text(super().to_internal_value(data))


class DateQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
