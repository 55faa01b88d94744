import datetime
import logging
from collections.abc import Collection, Sequence

from django.db import DatabaseError

from meetings.constants import SeriesSyncStep
from meetings.exceptions import StorageError
from meetings.models import Meeting
from meetings.services.dataclasses import ReconcileResult


logger = logging.getLogger(__name__)

# Descriptive fields non-head instances inherit from the series head
INHERITED_FIELDS = ("title", "location")


class SeriesReconciler:
    """
    Makes the stored members of a recurring series match a desired list of occurrences,
    with the fewest possible writes.
    """

    def reconcile(
        self,
        head: Meeting,
        desired_occurrences: Sequence[datetime.datetime],
        preserve_ids: Collection[int] = (),
    ) -> ReconcileResult:
        """
        Update, create and delete series members so that member `i` is dated
        `desired_occurrences[i]`.

        Updates are applied first, then inserts, then deletes. Rows listed in
        `preserve_ids` are never deleted.

        :param head: The series head, which always takes the first occurrence
        :param desired_occurrences: Sorted occurrences the series should have
        :param preserve_ids: IDs of members that must survive even if left over
        :return: IDs of the inserted, updated and deleted rows
        """
        try:
            children = list(
                Meeting.objects.filter_by_owner(head.user_id)
                .filter_series_instances(head.id)
                .order_by_occurrence()
            )
        except DatabaseError as e:
            raise StorageError(SeriesSyncStep.RECONCILE, str(e)) from e

        existing: list[Meeting] = [head, *children]

        updates: list[tuple[Meeting, dict]] = []
        inserts: list[Meeting] = []
        for index, occurrence in enumerate(desired_occurrences):
            if index < len(existing):
                member = existing[index]
                changes = self._get_member_changes(head, member, index, occurrence)
                if changes:
                    updates.append((member, changes))
            else:
                inserts.append(
                    Meeting(
                        user_id=head.user_id,
                        title=head.title,
                        location=head.location,
                        meeting_at=occurrence,
                        recurrence_parent_id=head.id,
                        recurrence_instance_index=index + 1,
                    )
                )

        deletes = [
            member.id
            for member in existing[len(desired_occurrences) :]
            if member.id not in preserve_ids and member.id != head.id
        ]

        result = ReconcileResult()
        try:
            for member, changes in updates:
                Meeting.objects.filter_by_owner(head.user_id).filter(id=member.id).update(
                    **changes
                )
                for field_name, value in changes.items():
                    setattr(member, field_name, value)
                result.updated_ids.append(member.id)

            if inserts:
                created = Meeting.objects.bulk_create(inserts)
                result.inserted_ids.extend(meeting.id for meeting in created)

            if deletes:
                Meeting.objects.filter_by_owner(head.user_id).filter(id__in=deletes).delete()
                result.deleted_ids.extend(deletes)
        except DatabaseError as e:
            raise StorageError(SeriesSyncStep.RECONCILE, str(e)) from e

        logger.debug(
            "Reconciled series %s: %s updated, %s inserted, %s deleted",
            head.id,
            len(result.updated_ids),
            len(result.inserted_ids),
            len(result.deleted_ids),
        )
        return result

    def _get_member_changes(
        self,
        head: Meeting,
        member: Meeting,
        index: int,
        occurrence: datetime.datetime,
    ) -> dict:
        expected = {
            "meeting_at": occurrence,
            "recurrence_parent_id": None if index == 0 else head.id,
            "recurrence_instance_index": index + 1,
        }
        if index > 0:
            for field_name in INHERITED_FIELDS:
                expected[field_name] = getattr(head, field_name)

        return {
            field_name: value
            for field_name, value in expected.items()
            if getattr(member, field_name) != value
        }
