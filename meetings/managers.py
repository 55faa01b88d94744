from common.managers import BaseOwnedModelManager
from meetings.querysets import MeetingQuerySet


class MeetingManager(BaseOwnedModelManager):
    """
    Custom manager for Meeting model to handle recurring series queries.
    """

    def get_queryset(self) -> MeetingQuerySet:
        return MeetingQuerySet(self.model, using=self._db)

    def filter_series_heads(self):
        return self.get_queryset().filter_series_heads()

    def filter_series_instances(self, head_id: int):
        return self.get_queryset().filter_series_instances(head_id)

    def filter_series_members(self, head_id: int):
        return self.get_queryset().filter_series_members(head_id)
