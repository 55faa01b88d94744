from django.db.models import Manager

from common.exceptions import OwnerRequiredError
from common.querysets import BaseOwnedModelQuerySet


class BaseOwnedModelManager(Manager):
    """
    Base manager for models owned by a user.
    This manager can be extended by other owned models.
    """

    def get_queryset(self):
        return BaseOwnedModelQuerySet(self.model, using=self._db)

    def filter_by_owner(self, user_id: int):
        """
        Filters the queryset by the specified owner ID.
        :param user_id: ID of the owning user.
        :return: Filtered queryset.
        """
        return self.get_queryset().filter_by_owner(user_id)

    def create(self, **kwargs):
        if "user_id" not in kwargs and "user" not in kwargs:
            raise OwnerRequiredError()
        return super().create(**kwargs)
