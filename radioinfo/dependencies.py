"""
Dependency providers for the HTTP layer

Routes receive the refresh controller through FastAPI's dependency system so
tests can swap in a controller with a prepared snapshot.
"""
from radioinfo.services.refresh_controller import RefreshController, get_refresh_controller


def get_controller() -> RefreshController:
    """FastAPI dependency returning the process-wide refresh controller"""
    return get_refresh_controller()
