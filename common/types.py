from typing import TypedDict

from rest_framework.viewsets import ViewSetMixin


class RouteDict(TypedDict):
    """
    A viewset registration on the API router: URL prefix, viewset and basename.
    """

    regex: str
    viewset: type[ViewSetMixin]
    basename: str
