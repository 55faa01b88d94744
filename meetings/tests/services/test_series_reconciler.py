import datetime
from unittest.mock import patch

from django.db import DatabaseError

import pytest
from model_bakery import baker

from meetings.constants import SeriesSyncStep
from meetings.exceptions import StorageError
from meetings.models import Meeting
from meetings.services.series_reconciler import SeriesReconciler


def _dt(year, month, day, hour=9):
    return datetime.datetime(year, month, day, hour, tzinfo=datetime.UTC)


@pytest.fixture
def head(user):
    return baker.make(
        Meeting, user=user, title="Standup", location="Room 1", meeting_at=_dt(2024, 1, 1)
    )


@pytest.fixture
def reconciler():
    return SeriesReconciler()


def _series(head):
    return list(
        Meeting.objects.filter_by_owner(head.user_id)
        .filter_series_members(head.id)
        .order_by_occurrence()
    )


@pytest.mark.django_db
def test_reconcile_creates_missing_members(head, reconciler):
    occurrences = [_dt(2024, 1, day) for day in (1, 2, 3)]

    result = reconciler.reconcile(head, occurrences)

    members = _series(head)
    assert [member.meeting_at for member in members] == occurrences
    assert [member.recurrence_instance_index for member in members] == [1, 2, 3]
    assert [member.recurrence_parent_id for member in members] == [None, head.id, head.id]
    assert {member.title for member in members} == {"Standup"}
    assert {member.location for member in members} == {"Room 1"}
    assert len(result.inserted_ids) == 2
    assert result.updated_ids == [head.id]
    assert result.deleted_ids == []


@pytest.mark.django_db
def test_reconcile_twice_performs_no_writes(head, reconciler):
    occurrences = [_dt(2024, 1, day) for day in (1, 8, 15, 22)]
    reconciler.reconcile(head, occurrences)
    ids_before = [member.id for member in _series(head)]

    result = reconciler.reconcile(head, occurrences)

    assert result.write_count == 0
    assert [member.id for member in _series(head)] == ids_before


@pytest.mark.django_db
def test_reconcile_updates_in_place_and_deletes_leftovers(head, reconciler):
    reconciler.reconcile(head, [_dt(2024, 1, day) for day in (1, 2, 3, 4)])
    ids_before = [member.id for member in _series(head)]

    result = reconciler.reconcile(head, [_dt(2024, 1, 1), _dt(2024, 1, 5)])

    members = _series(head)
    assert [member.id for member in members] == ids_before[:2]
    assert [member.meeting_at for member in members] == [_dt(2024, 1, 1), _dt(2024, 1, 5)]
    assert result.updated_ids == [ids_before[1]]
    assert sorted(result.deleted_ids) == sorted(ids_before[2:])
    assert not Meeting.objects.filter(id__in=ids_before[2:]).exists()


@pytest.mark.django_db
def test_reconcile_resyncs_inherited_fields(head, reconciler):
    reconciler.reconcile(head, [_dt(2024, 1, 1), _dt(2024, 1, 2)])
    Meeting.objects.filter(id=head.id).update(title="Renamed standup")
    head.refresh_from_db()

    reconciler.reconcile(head, [_dt(2024, 1, 1), _dt(2024, 1, 2)])

    assert {member.title for member in _series(head)} == {"Renamed standup"}


@pytest.mark.django_db
def test_reconcile_keeps_preserved_members(head, reconciler):
    reconciler.reconcile(head, [_dt(2024, 1, day) for day in (1, 2, 3)])
    last = _series(head)[-1]

    result = reconciler.reconcile(head, [_dt(2024, 1, 1)], preserve_ids={last.id})

    assert Meeting.objects.filter(id=last.id).exists()
    assert last.id not in result.deleted_ids
    assert len(result.deleted_ids) == 1


@pytest.mark.django_db
def test_reconcile_wraps_database_errors(head, reconciler):
    with patch.object(Meeting.objects, "bulk_create", side_effect=DatabaseError("disk full")):
        with pytest.raises(StorageError) as exc_info:
            reconciler.reconcile(head, [_dt(2024, 1, 1), _dt(2024, 1, 2)])

    assert exc_info.value.step == SeriesSyncStep.RECONCILE
    assert isinstance(exc_info.value.__cause__, DatabaseError)
