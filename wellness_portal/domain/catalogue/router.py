"""Catalogue router - FastAPI endpoints for services and centres"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import CurrentSession, require_permission
from ...database import get_db
from ...models import Centre, Service
from ...permissions import Permissions
from .schemas import (
    BookingSettings,
    CentreAddress,
    CentreCreate,
    CentreResponse,
    CentreServicesUpdate,
    CentreUpdate,
    ServiceCentresUpdate,
    ServiceCreate,
    ServiceResponse,
    ServiceUpdate,
)
from .service import CatalogueService

logger = logging.getLogger(__name__)

services_router = APIRouter(prefix="/services", tags=["Services"])
centres_router = APIRouter(prefix="/centres", tags=["Centres"])


def get_catalogue_service(db: Session = Depends(get_db)) -> CatalogueService:
    """Dependency injection for CatalogueService"""
    return CatalogueService(db)


def service_response(s: Service) -> ServiceResponse:
    return ServiceResponse(
        id=s.id,
        name=s.name,
        description=s.description,
        category=s.category,
        duration=s.duration,
        price=s.price,
        requiredQualifications=s.required_qualifications or [],
        equipmentRequired=s.equipment_required or [],
        isActive=s.is_active,
        availableAtCentres=s.available_at_centres or [],
        preparationInstructions=s.preparation_instructions,
        followUpRequired=s.follow_up_required,
        maxConcurrentBookings=s.max_concurrent_bookings,
        bookingSettings=BookingSettings(
            advanceBookingDays=s.advance_booking_days,
            cancellationHours=s.cancellation_hours,
            requiresApproval=s.requires_approval,
        ),
        createdAt=s.created_at,
        updatedAt=s.updated_at,
    )


def centre_response(c: Centre) -> CentreResponse:
    return CentreResponse(
        id=c.id,
        name=c.name,
        address=CentreAddress(
            street=c.street,
            suburb=c.suburb,
            city=c.city,
            province=c.province,
            postalCode=c.postal_code,
            country=c.country,
        ),
        phone=c.phone,
        email=c.email,
        description=c.description,
        timezone=c.timezone,
        operatingHours=c.operating_hours or {},
        isActive=c.is_active,
        services=c.services or [],
        createdAt=c.created_at,
        updatedAt=c.updated_at,
    )


# ============================================================================
# SERVICES
# ============================================================================


@services_router.get("", response_model=list[ServiceResponse])
async def list_services(
    active_only: bool = Query(False, alias="activeOnly"),
    session: CurrentSession = Depends(require_permission(Permissions.VIEW_SERVICES)),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return [service_response(s) for s in service.list_services(active_only)]


@services_router.post("", response_model=ServiceResponse, status_code=201)
async def create_service(
    data: ServiceCreate,
    session: CurrentSession = Depends(require_permission(Permissions.CREATE_SERVICE)),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return service_response(service.create_service(data))


@services_router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(
    service_id: str,
    session: CurrentSession = Depends(require_permission(Permissions.VIEW_SERVICES)),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return service_response(service.get_service(service_id))


@services_router.patch("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: str,
    data: ServiceUpdate,
    session: CurrentSession = Depends(require_permission(Permissions.EDIT_SERVICE)),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return service_response(service.update_service(service_id, data))


@services_router.put("/{service_id}/centres", response_model=ServiceResponse)
async def set_service_centres(
    service_id: str,
    data: ServiceCentresUpdate,
    session: CurrentSession = Depends(require_permission(Permissions.EDIT_SERVICE)),
    service: CatalogueService = Depends(get_catalogue_service),
):
    """Replace the set of centres offering this service"""
    logger.info(f"📥 {session.email} setting centres for service {service_id}")
    return service_response(service.set_service_centres(service_id, data.centreIds))


@services_router.delete("/{service_id}")
async def delete_service(
    service_id: str,
    session: CurrentSession = Depends(require_permission(Permissions.DELETE_SERVICE)),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return service.delete_service(service_id)


# ============================================================================
# CENTRES
# ============================================================================


@centres_router.get("", response_model=list[CentreResponse])
async def list_centres(
    active_only: bool = Query(False, alias="activeOnly"),
    session: CurrentSession = Depends(require_permission(Permissions.VIEW_CENTRE)),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return [centre_response(c) for c in service.list_centres(active_only)]


@centres_router.post("", response_model=CentreResponse, status_code=201)
async def create_centre(
    data: CentreCreate,
    session: CurrentSession = Depends(require_permission(Permissions.CREATE_CENTRE)),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return centre_response(service.create_centre(data))


@centres_router.get("/{centre_id}", response_model=CentreResponse)
async def get_centre(
    centre_id: str,
    session: CurrentSession = Depends(require_permission(Permissions.VIEW_CENTRE)),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return centre_response(service.get_centre(centre_id))


@centres_router.patch("/{centre_id}", response_model=CentreResponse)
async def update_centre(
    centre_id: str,
    data: CentreUpdate,
    session: CurrentSession = Depends(require_permission(Permissions.EDIT_CENTRE)),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return centre_response(service.update_centre(centre_id, data))


@centres_router.get("/{centre_id}/services", response_model=list[ServiceResponse])
async def list_centre_services(
    centre_id: str,
    session: CurrentSession = Depends(require_permission(Permissions.VIEW_SERVICES)),
    service: CatalogueService = Depends(get_catalogue_service),
):
    """Active services offered at a centre"""
    return [service_response(s) for s in service.list_centre_services(centre_id)]


@centres_router.put("/{centre_id}/services", response_model=CentreResponse)
async def set_centre_services(
    centre_id: str,
    data: CentreServicesUpdate,
    session: CurrentSession = Depends(require_permission(Permissions.EDIT_CENTRE)),
    service: CatalogueService = Depends(get_catalogue_service),
):
    """Replace the set of services offered at this centre"""
    logger.info(f"📥 {session.email} setting services for centre {centre_id}")
    return centre_response(service.set_centre_services(centre_id, data.serviceIds))


@centres_router.delete("/{centre_id}")
async def delete_centre(
    centre_id: str,
    session: CurrentSession = Depends(require_permission(Permissions.DELETE_CENTRE)),
    service: CatalogueService = Depends(get_catalogue_service),
):
    return service.delete_centre(centre_id)
