from unittest.mock import patch

from django.db import DatabaseError

import pytest
from model_bakery import baker

from meetings.constants import AttendanceStatus, AttendeeRole, InvitationStatus, SeriesSyncStep
from meetings.exceptions import StorageError
from meetings.models import Contact, Meeting, MeetingAttendee, MeetingTag, Tag
from meetings.services.template_propagator import TemplatePropagator


@pytest.fixture
def head(user):
    head = baker.make(Meeting, user=user, title="Planning")
    contact = baker.make(Contact, user=user, first_name="Grace")
    tag = baker.make(Tag, user=user, name="planning")
    baker.make(
        MeetingAttendee,
        user=user,
        meeting=head,
        contact=contact,
        role=AttendeeRole.ORGANIZER,
        invitation_status=InvitationStatus.ACCEPTED,
        attendance_status=AttendanceStatus.ATTENDED,
        notes="Brings the agenda",
    )
    baker.make(MeetingTag, user=user, meeting=head, tag=tag)
    return head


@pytest.mark.django_db
def test_copy_templates_to_each_target(head):
    targets = baker.make(Meeting, user=head.user, recurrence_parent=head, _quantity=2)

    created = TemplatePropagator().copy_templates(head.id, [target.id for target in targets])

    assert created == 4
    for target in targets:
        attendee = MeetingAttendee.objects.get(meeting=target)
        assert attendee.role == AttendeeRole.ORGANIZER
        assert attendee.invitation_status == InvitationStatus.ACCEPTED
        assert attendee.attendance_status == AttendanceStatus.ATTENDED
        assert attendee.notes == "Brings the agenda"
        assert attendee.user_id == head.user_id
        assert list(target.tags.values_list("name", flat=True)) == ["planning"]


@pytest.mark.django_db
def test_copies_are_independent_rows(head):
    target = baker.make(Meeting, user=head.user, recurrence_parent=head)
    TemplatePropagator().copy_templates(head.id, [target.id])

    MeetingAttendee.objects.filter(meeting=target).update(notes="Changed for this meeting")

    assert MeetingAttendee.objects.get(meeting=head).notes == "Brings the agenda"


@pytest.mark.django_db
def test_copy_templates_skips_head_and_empty_targets(head):
    propagator = TemplatePropagator()

    assert propagator.copy_templates(head.id, []) == 0
    assert propagator.copy_templates(head.id, [head.id]) == 0
    assert MeetingAttendee.objects.filter(meeting=head).count() == 1


@pytest.mark.django_db
def test_copy_templates_without_templates_is_noop(user):
    head = baker.make(Meeting, user=user)
    target = baker.make(Meeting, user=user, recurrence_parent=head)

    assert TemplatePropagator().copy_templates(head.id, [target.id]) == 0


@pytest.mark.django_db
def test_copy_templates_wraps_database_errors(head):
    target = baker.make(Meeting, user=head.user, recurrence_parent=head)

    with patch.object(
        MeetingAttendee.objects, "bulk_create", side_effect=DatabaseError("constraint")
    ):
        with pytest.raises(StorageError) as exc_info:
            TemplatePropagator().copy_templates(head.id, [target.id])

    assert exc_info.value.step == SeriesSyncStep.TEMPLATE_COPY
