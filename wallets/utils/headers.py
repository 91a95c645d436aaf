import uuid

from rest_framework.exceptions import ValidationError


def get_idempotency_key(request):
    """
    Return the request's Idempotency-Key header as a UUID string, or None.

    Raises:
        ValidationError: If the header is present but isn't a UUID.
    """
    key = request.META.get("HTTP_IDEMPOTENCY_KEY")
    if not key:
        return None
    try:
        return str(uuid.UUID(key))
    except ValueError:
        raise ValidationError({"Idempotency-Key": "Must be a UUID."})
