from common.types import RouteDict

from .views import MeetingViewSet


routes: list[RouteDict] = [
    {
        "regex": r"meetings",
        "viewset": MeetingViewSet,
        "basename": "Meetings",
    },
]
