"""
FastAPI dependencies.

Import from the submodules directly:

    from fieldbook.api.dependencies.auth import get_current_principal
    from fieldbook.api.dependencies.services import get_booking_service
"""
