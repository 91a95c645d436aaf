from django.db import models


class BaseModel(models.Model):
    """
    Abstract base model with creation/update timestamps.

    Shared by the wallet and order models. Default ordering is newest first,
    with the primary key breaking ties between rows written in the same
    instant (several ledger entries are often posted in one transaction).
    """

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ["-created_at", "-id"]
