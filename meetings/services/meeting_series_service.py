import dataclasses
import datetime
import logging
from typing import Annotated

from django.db import DatabaseError, transaction

from dependency_injector.wiring import Provide, inject

from meetings.constants import (
    RecurrenceEditScope,
    RecurrenceEndType,
    RecurrenceFrequency,
    SeriesSyncStep,
)
from meetings.exceptions import (
    MeetingSeriesServiceNotInitializedError,
    NoRecurrenceConfiguredError,
    NotFoundError,
    StorageError,
)
from meetings.models import Meeting, MeetingRecurrence
from meetings.recurrence_utils import OccurrenceGenerator, local_anchor, weekday_code_for
from meetings.services.dataclasses import (
    RecurrenceDeleteResult,
    RecurrenceRuleData,
    RecurrenceRuleInputData,
    RecurrenceUpsertResult,
)
from meetings.services.series_reconciler import SeriesReconciler
from meetings.services.template_propagator import TemplatePropagator
from users.models import User


logger = logging.getLogger(__name__)


class MeetingSeriesService:
    """
    Applies recurrence changes to meeting series.

    Every public operation runs inside a single database transaction and locks the
    series head, so a failed step leaves no partial writes and concurrent edits of
    the same series are serialized.
    """

    user: User | None

    @inject
    def __init__(
        self,
        occurrence_generator: Annotated[
            "OccurrenceGenerator | None", Provide["occurrence_generator"]
        ] = None,
        series_reconciler: Annotated["SeriesReconciler | None", Provide["series_reconciler"]] = None,
        template_propagator: Annotated[
            "TemplatePropagator | None", Provide["template_propagator"]
        ] = None,
    ) -> None:
        """Initialize a MeetingSeriesService instance. Call initialize() before using it."""
        self.user = None
        self.occurrence_generator = occurrence_generator or OccurrenceGenerator()
        self.series_reconciler = series_reconciler or SeriesReconciler()
        self.template_propagator = template_propagator or TemplatePropagator()

    def initialize(self, user: User) -> None:
        """
        Scope the service to the meetings owned by `user`.
        """
        self.user = user

    def _get_user(self) -> User:
        if self.user is None:
            raise MeetingSeriesServiceNotInitializedError()
        return self.user

    def _get_meeting(self, meeting_id: int) -> Meeting:
        try:
            return Meeting.objects.filter_by_owner(self._get_user().id).get(id=meeting_id)
        except Meeting.DoesNotExist as e:
            raise NotFoundError() from e

    def _lock_series_head(self, meeting: Meeting) -> Meeting:
        """
        Return the head of `meeting`'s series, locked for the current transaction.
        A meeting without a parent is its own head.
        """
        try:
            return (
                Meeting.objects.select_for_update()
                .filter_by_owner(self._get_user().id)
                .get(id=meeting.series_head_id)
            )
        except Meeting.DoesNotExist as e:
            raise NotFoundError("Series head not found") from e

    def _get_recurrence(self, head: Meeting) -> MeetingRecurrence | None:
        return (
            MeetingRecurrence.objects.filter_by_owner(self._get_user().id)
            .filter(meeting_id=head.id)
            .first()
        )

    def _save_recurrence(self, meeting: Meeting, rule: RecurrenceRuleData) -> MeetingRecurrence:
        try:
            recurrence, _ = MeetingRecurrence.objects.update_or_create(
                meeting=meeting,
                defaults={
                    "user_id": meeting.user_id,
                    "frequency": rule.frequency,
                    "interval": rule.interval,
                    "weekdays": list(rule.weekdays),
                    "monthly_option": rule.monthly_option,
                    "monthly_day_of_month": rule.monthly_day_of_month,
                    "monthly_weekday": rule.monthly_weekday,
                    "monthly_weekday_position": rule.monthly_weekday_position,
                    "end_type": rule.end_type,
                    "end_date": rule.end_date if rule.end_type == RecurrenceEndType.ON else None,
                    "occurrence_count": (
                        rule.occurrence_count if rule.end_type == RecurrenceEndType.AFTER else None
                    ),
                    "starts_at": rule.starts_at,
                    "timezone": rule.timezone,
                },
            )
        except DatabaseError as e:
            raise StorageError(SeriesSyncStep.RULE_WRITE, str(e)) from e
        return recurrence

    def _build_rule(
        self, rule_input: RecurrenceRuleInputData, starts_at: datetime.datetime | None
    ) -> RecurrenceRuleData:
        """
        Anchor `rule_input` at `starts_at`. Weekly rules without weekdays repeat on the
        anchor's local weekday.
        """
        rule = rule_input.to_rule_data(starts_at=starts_at)
        self.occurrence_generator.validate(rule)
        if rule.frequency == RecurrenceFrequency.WEEK and not rule.weekdays:
            rule = dataclasses.replace(
                rule, weekdays=(weekday_code_for(local_anchor(rule).date()),)
            )
        return rule

    def _copy_templates(self, head: Meeting, target_ids: list[int]) -> None:
        if target_ids:
            self.template_propagator.copy_templates(head.id, target_ids)

    def upsert_recurrence(
        self,
        meeting_id: int,
        rule_input: RecurrenceRuleInputData,
        scope: RecurrenceEditScope | str = RecurrenceEditScope.SERIES,
    ) -> RecurrenceUpsertResult:
        """
        Create or replace the recurrence of a meeting and resync its series.

        With `scope="series"` the whole series follows the new rule, anchored at the
        head's date. With `scope="following"` the series is split: the original series
        ends right before `meeting_id` and a new series starts at it.

        :param meeting_id: ID of the meeting being edited
        :param rule_input: The new recurrence configuration
        :param scope: "series" or "following"
        :return: The sync result
        """
        scope = RecurrenceEditScope(scope)
        try:
            with transaction.atomic():
                meeting = self._get_meeting(meeting_id)
                head = self._lock_series_head(meeting)

                if scope == RecurrenceEditScope.FOLLOWING and meeting.id == head.id:
                    scope = RecurrenceEditScope.SERIES

                if scope == RecurrenceEditScope.FOLLOWING:
                    result = self._split_series(head, meeting, rule_input)
                else:
                    result = self._update_series(head, meeting, rule_input)
        except StorageError as e:
            logger.warning(
                "Recurrence update for meeting %s failed during %s: %s", meeting_id, e.step, e
            )
            raise

        logger.info(
            "Updated recurrence of meeting %s (%s): %s occurrences, %s new meetings",
            meeting_id,
            result.scope,
            result.generated_count,
            len(result.inserted_ids),
        )
        return result

    def _update_series(
        self, head: Meeting, meeting: Meeting, rule_input: RecurrenceRuleInputData
    ) -> RecurrenceUpsertResult:
        rule = self._build_rule(rule_input, head.meeting_at or rule_input.starts_at)
        occurrences = self.occurrence_generator.generate(rule)

        self._save_recurrence(head, rule)
        reconciled = self.series_reconciler.reconcile(head, occurrences)
        self._copy_templates(head, reconciled.inserted_ids)

        return RecurrenceUpsertResult(
            meeting_id=meeting.id,
            series_head_id=head.id,
            generated_count=len(occurrences),
            scope=RecurrenceEditScope.SERIES,
            inserted_ids=reconciled.inserted_ids,
        )

    def _split_series(
        self, head: Meeting, meeting: Meeting, rule_input: RecurrenceRuleInputData
    ) -> RecurrenceUpsertResult:
        """
        End the head's series right before `meeting` and start a new series at it.
        """
        head_recurrence = self._get_recurrence(head)
        if head_recurrence is None:
            raise NoRecurrenceConfiguredError()

        original_occurrences = self.occurrence_generator.generate(head_recurrence.to_rule_data())
        split_index = next(
            (
                index
                for index, occurrence in enumerate(original_occurrences)
                if meeting.meeting_at is not None and occurrence == meeting.meeting_at
            ),
            None,
        )
        if not split_index:
            # nothing before this meeting to keep
            return self._update_series(head, meeting, rule_input)

        split_at: datetime.datetime = meeting.meeting_at  # type: ignore[assignment]
        new_rule = self._build_rule(rule_input, split_at)
        new_occurrences = self.occurrence_generator.generate(new_rule)

        keep_occurrences = original_occurrences[:split_index]
        if head_recurrence.end_type == RecurrenceEndType.AFTER:
            head_recurrence.occurrence_count = len(keep_occurrences)
        else:
            head_recurrence.end_date = keep_occurrences[-1].date()
        try:
            head_recurrence.save(update_fields=["occurrence_count", "end_date", "modified"])
        except DatabaseError as e:
            raise StorageError(SeriesSyncStep.RULE_WRITE, str(e)) from e

        try:
            meeting.recurrence_parent = None
            meeting.recurrence_instance_index = 1
            meeting.save(update_fields=["recurrence_parent", "recurrence_instance_index", "modified"])

            superseded = (
                Meeting.objects.filter_by_owner(head.user_id)
                .filter_series_instances(head.id)
                .filter(meeting_at__gt=split_at)
                .exclude(id=meeting.id)
            )
            superseded_count = superseded.count()
            superseded.delete()
        except DatabaseError as e:
            raise StorageError(SeriesSyncStep.SPLIT, str(e)) from e

        truncated = self.series_reconciler.reconcile(
            head, keep_occurrences, preserve_ids={meeting.id}
        )

        self._save_recurrence(meeting, new_rule)
        continued = self.series_reconciler.reconcile(meeting, new_occurrences)

        self._copy_templates(head, truncated.inserted_ids + continued.inserted_ids)

        logger.info(
            "Split series %s at meeting %s: kept %s occurrences, removed %s superseded meetings",
            head.id,
            meeting.id,
            len(keep_occurrences),
            superseded_count,
        )
        return RecurrenceUpsertResult(
            meeting_id=meeting.id,
            series_head_id=meeting.id,
            generated_count=len(new_occurrences),
            scope=RecurrenceEditScope.FOLLOWING,
            inserted_ids=truncated.inserted_ids + continued.inserted_ids,
        )

    def delete_recurrence(self, meeting_id: int) -> RecurrenceDeleteResult:
        """
        Remove the recurrence of the series `meeting_id` belongs to, reverting its
        head to a single meeting. Every other member of the series is deleted.
        """
        with transaction.atomic():
            meeting = self._get_meeting(meeting_id)
            head = self._lock_series_head(meeting)

            try:
                MeetingRecurrence.objects.filter_by_owner(head.user_id).filter(
                    meeting_id=head.id
                ).delete()

                members = Meeting.objects.filter_by_owner(head.user_id).filter_series_instances(
                    head.id
                )
                deleted_count = members.count()
                members.delete()

                head.recurrence_instance_index = None
                head.save(update_fields=["recurrence_instance_index", "modified"])
            except DatabaseError as e:
                logger.warning("Recurrence removal for meeting %s failed: %s", meeting_id, e)
                raise StorageError(SeriesSyncStep.DELETE, str(e)) from e

        logger.info(
            "Removed recurrence of series %s, deleting %s meetings", head.id, deleted_count
        )
        return RecurrenceDeleteResult(meeting_id=head.id, deleted_count=deleted_count)
