from typing import Callable

from labwise.services.factory import PipelineServices, build_services

ServicesFactory = Callable[..., PipelineServices]


def get_services_factory() -> ServicesFactory:
    """Services are built per request, after validation, so a bad request never touches credentials."""
    return build_services
