from dependency_injector import containers, providers

from meetings.recurrence_utils import OccurrenceGenerator
from meetings.services.meeting_series_service import MeetingSeriesService
from meetings.services.series_reconciler import SeriesReconciler
from meetings.services.template_propagator import TemplatePropagator


class AppContainer(containers.DeclarativeContainer):
    config = providers.Configuration()

    occurrence_generator = providers.Factory(
        OccurrenceGenerator,
        max_iterations=config.OCCURRENCE_GENERATION_MAX_ITERATIONS,
    )

    series_reconciler = providers.Factory(
        SeriesReconciler,
    )

    template_propagator = providers.Factory(
        TemplatePropagator,
    )

    meeting_series_service = providers.Factory(
        MeetingSeriesService,
        occurrence_generator=occurrence_generator,
        series_reconciler=series_reconciler,
        template_propagator=template_propagator,
    )


container: AppContainer | None = None  # set during app startup
