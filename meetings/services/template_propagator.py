import logging
from collections.abc import Iterable

from django.db import DatabaseError

from meetings.constants import SeriesSyncStep
from meetings.exceptions import StorageError
from meetings.models import MeetingAttendee, MeetingTag


logger = logging.getLogger(__name__)


class TemplatePropagator:
    """
    Copies the attendee and tag associations of a series head onto other meetings.
    Copies are independent rows, so editing one instance never touches another.
    """

    def copy_templates(self, source_head_id: int, target_ids: Iterable[int]) -> int:
        """
        Copy every attendee and tag of the head onto each target meeting.

        :param source_head_id: ID of the series head holding the templates
        :param target_ids: IDs of the meetings receiving the copies
        :return: Number of association rows created
        """
        target_ids = [target_id for target_id in target_ids if target_id != source_head_id]
        if not target_ids:
            return 0

        try:
            attendee_templates = list(MeetingAttendee.objects.filter(meeting_id=source_head_id))
            tag_templates = list(MeetingTag.objects.filter(meeting_id=source_head_id))
            if not attendee_templates and not tag_templates:
                return 0

            attendees = MeetingAttendee.objects.bulk_create(
                [
                    MeetingAttendee(
                        user_id=template.user_id,
                        meeting_id=target_id,
                        contact_id=template.contact_id,
                        role=template.role,
                        invitation_status=template.invitation_status,
                        attendance_status=template.attendance_status,
                        notes=template.notes,
                    )
                    for target_id in target_ids
                    for template in attendee_templates
                ]
            )
            tags = MeetingTag.objects.bulk_create(
                [
                    MeetingTag(
                        user_id=template.user_id,
                        meeting_id=target_id,
                        tag_id=template.tag_id,
                    )
                    for target_id in target_ids
                    for template in tag_templates
                ]
            )
        except DatabaseError as e:
            raise StorageError(SeriesSyncStep.TEMPLATE_COPY, str(e)) from e

        logger.debug(
            "Copied %s attendees and %s tags from meeting %s onto %s meetings",
            len(attendees),
            len(tags),
            source_head_id,
            len(target_ids),
        )
        return len(attendees) + len(tags)
