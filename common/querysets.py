from django.db.models.query import QuerySet


class BaseOwnedModelQuerySet(QuerySet):
    """
    Base QuerySet for models that are owned by a user.
    """

    def filter_by_owner(self, user_id: int):
        """
        Filters the queryset by the specified owner ID.
        :param user_id: ID of the owning user.
        :return: Filtered QuerySet.
        """
        return self.filter(user_id=user_id)

    def update(self, **kwargs):
        if "user_id" in kwargs or "user" in kwargs:
            raise ValueError("`user` cannot be updated.")
        return super().update(**kwargs)
