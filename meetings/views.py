import logging
from typing import Annotated

from django.http import Http404

from dependency_injector.wiring import Provide, inject
from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from meetings.exceptions import InvalidRuleError, NotFoundError, StorageError
from meetings.models import Meeting
from meetings.serializers import (
    MeetingRecurrenceInputSerializer,
    MeetingSerializer,
    RecurrenceUpsertResultSerializer,
    StorageErrorSerializer,
)
from meetings.services.meeting_series_service import MeetingSeriesService


logger = logging.getLogger(__name__)


class MeetingViewSet(viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for reading meetings and managing their recurrence.
    """

    permission_classes = (IsAuthenticated,)
    queryset = Meeting.objects.all()
    serializer_class = MeetingSerializer

    def get_queryset(self):
        """Only the meetings owned by the requesting user."""
        user = self.request.user
        if not user.is_authenticated:
            return Meeting.objects.none()

        return (
            super()
            .get_queryset()
            .filter_by_owner(user.id)
            .select_related("recurrence")
            .prefetch_related("attendees", "meeting_tags__tag")
            .order_by_occurrence()
        )

    def _storage_error_response(self, error: StorageError) -> Response:
        return Response(
            StorageErrorSerializer({"detail": str(error), "step": error.step}).data,
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    @extend_schema(
        methods=["POST"],
        summary="Create or replace the recurrence of a meeting",
        description=(
            "Applies the recurrence to the whole series (`scope=series`) or splits the series "
            "at this meeting (`scope=following`)."
        ),
        request=MeetingRecurrenceInputSerializer,
        responses={
            200: RecurrenceUpsertResultSerializer,
            503: StorageErrorSerializer,
        },
    )
    @extend_schema(
        methods=["DELETE"],
        summary="Remove the recurrence of a meeting series",
        responses={204: None, 503: StorageErrorSerializer},
    )
    @action(
        methods=["POST", "DELETE"],
        detail=True,
        url_path="recurrence",
        url_name="recurrence",
    )
    @inject
    def recurrence(
        self,
        request,
        pk,
        meeting_series_service: Annotated[
            MeetingSeriesService, Provide["meeting_series_service"]
        ],
    ):
        meeting = self.get_object()
        meeting_series_service.initialize(user=request.user)

        if request.method == "DELETE":
            try:
                meeting_series_service.delete_recurrence(meeting.id)
            except NotFoundError as e:
                raise Http404(str(e)) from e
            except StorageError as e:
                return self._storage_error_response(e)
            return Response(status=status.HTTP_204_NO_CONTENT)

        serializer = MeetingRecurrenceInputSerializer(
            data=request.data,
            context={**self.get_serializer_context(), "meeting": meeting},
        )
        serializer.is_valid(raise_exception=True)

        try:
            result = meeting_series_service.upsert_recurrence(
                meeting.id,
                serializer.to_input_data(),
                scope=serializer.validated_data["scope"],
            )
        except InvalidRuleError as e:
            raise ValidationError({"non_field_errors": [str(e)]}) from e
        except NotFoundError as e:
            raise Http404(str(e)) from e
        except StorageError as e:
            return self._storage_error_response(e)

        return Response(RecurrenceUpsertResultSerializer(result).data)
