from django.db.models import F, Q

from common.querysets import BaseOwnedModelQuerySet


class MeetingQuerySet(BaseOwnedModelQuerySet):
    """
    Custom QuerySet for Meeting model to handle recurring series queries.
    """

    def filter_series_heads(self):
        """Filter to get only meetings that head a recurring series."""
        return self.filter(recurrence_parent__isnull=True, recurrence__isnull=False)

    def filter_series_instances(self, head_id: int):
        """Filter to get the non-head members of the series headed by `head_id`."""
        return self.filter(recurrence_parent_id=head_id)

    def filter_series_members(self, head_id: int):
        """Filter to get every member of the series headed by `head_id`, head included."""
        return self.filter(Q(id=head_id) | Q(recurrence_parent_id=head_id))

    def order_by_occurrence(self):
        """Order by meeting date, undated meetings last."""
        return self.order_by(F("meeting_at").asc(nulls_last=True), "id")
