"""Catalogue service - Business logic for services, centres and membership"""

import logging

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import Centre, Service
from ...utils.sanitization import sanitize_text
from .repository import CatalogueRepository
from .schemas import CentreCreate, CentreUpdate, ServiceCreate, ServiceUpdate

logger = logging.getLogger(__name__)


class CatalogueService:
    """Service layer for the service catalogue and centres"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CatalogueRepository()

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------

    def list_services(self, active_only: bool = False) -> list[Service]:
        return self.repo.list_services(self.db, active_only=active_only)

    def get_service(self, service_id: str) -> Service:
        service = self.repo.get_service(self.db, service_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        return service

    def _require_centres(self, centre_ids: list[str]) -> None:
        found = {c.id for c in self.repo.get_centres(self.db, centre_ids)}
        missing = [c for c in centre_ids if c not in found]
        if missing:
            raise HTTPException(status_code=400, detail=f"Unknown centre ids: {', '.join(missing)}")

    def create_service(self, data: ServiceCreate) -> Service:
        logger.info(f"📥 Creating service: {data.name}")
        self._require_centres(data.availableAtCentres)

        try:
            service = self.repo.create_service(
                self.db,
                centre_ids=data.availableAtCentres,
                name=data.name.strip(),
                description=sanitize_text(data.description),
                category=data.category,
                duration=data.duration,
                price=data.price,
                required_qualifications=data.requiredQualifications,
                equipment_required=data.equipmentRequired,
                is_active=data.isActive,
                preparation_instructions=sanitize_text(data.preparationInstructions),
                follow_up_required=data.followUpRequired,
                max_concurrent_bookings=data.maxConcurrentBookings,
                advance_booking_days=data.bookingSettings.advanceBookingDays,
                cancellation_hours=data.bookingSettings.cancellationHours,
                requires_approval=data.bookingSettings.requiresApproval,
            )
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to create service {data.name}: {str(e)}")
            raise HTTPException(status_code=500, detail="Failed to create service")

        logger.info(f"✅ Service created: {service.id}")
        return service

    def update_service(self, service_id: str, data: ServiceUpdate) -> Service:
        service = self.get_service(service_id)

        updates = {
            "name": data.name.strip() if data.name else None,
            "description": sanitize_text(data.description),
            "category": data.category,
            "duration": data.duration,
            "price": data.price,
            "required_qualifications": data.requiredQualifications,
            "equipment_required": data.equipmentRequired,
            "is_active": data.isActive,
            "preparation_instructions": sanitize_text(data.preparationInstructions),
            "follow_up_required": data.followUpRequired,
            "max_concurrent_bookings": data.maxConcurrentBookings,
        }
        if data.bookingSettings is not None:
            updates["advance_booking_days"] = data.bookingSettings.advanceBookingDays
            updates["cancellation_hours"] = data.bookingSettings.cancellationHours
            updates["requires_approval"] = data.bookingSettings.requiresApproval

        return self.repo.update(self.db, service, **updates)

    def delete_service(self, service_id: str) -> dict:
        service = self.get_service(service_id)
        try:
            self.repo.delete_service(self.db, service)
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to delete service {service_id}: {str(e)}")
            raise HTTPException(status_code=500, detail="Failed to delete service")
        logger.info(f"🗑️ Service deleted: {service_id}")
        return {"message": "Service deleted"}

    def set_service_centres(self, service_id: str, centre_ids: list[str]) -> Service:
        service = self.get_service(service_id)
        self._require_centres(centre_ids)
        try:
            return self.repo.set_service_centres(self.db, service, centre_ids)
        except SQLAlchemyError:
            raise HTTPException(status_code=500, detail="Failed to update service availability")

    # ------------------------------------------------------------------
    # Centres
    # ------------------------------------------------------------------

    def list_centres(self, active_only: bool = False) -> list[Centre]:
        return self.repo.list_centres(self.db, active_only=active_only)

    def get_centre(self, centre_id: str) -> Centre:
        centre = self.repo.get_centre(self.db, centre_id)
        if not centre:
            raise HTTPException(status_code=404, detail="Centre not found")
        return centre

    @staticmethod
    def _centre_fields(data: CentreCreate) -> dict:
        fields = {
            "name": data.name.strip() if data.name else None,
            "phone": data.phone,
            "email": data.email,
            "description": sanitize_text(data.description),
            "timezone": data.timezone,
            "operating_hours": data.operatingHours,
            "is_active": data.isActive,
        }
        if data.address is not None:
            fields.update(
                street=data.address.street,
                suburb=data.address.suburb,
                city=data.address.city,
                province=data.address.province,
                postal_code=data.address.postalCode,
                country=data.address.country,
            )
        return fields

    def create_centre(self, data: CentreCreate) -> Centre:
        logger.info(f"📥 Creating centre: {data.name}")
        centre = self.repo.create_centre(self.db, **self._centre_fields(data))
        logger.info(f"✅ Centre created: {centre.id}")
        return centre

    def update_centre(self, centre_id: str, data: CentreUpdate) -> Centre:
        centre = self.get_centre(centre_id)
        return self.repo.update(self.db, centre, **self._centre_fields(data))

    def delete_centre(self, centre_id: str) -> dict:
        centre = self.get_centre(centre_id)
        try:
            self.repo.delete_centre(self.db, centre)
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to delete centre {centre_id}: {str(e)}")
            raise HTTPException(status_code=500, detail="Failed to delete centre")
        logger.info(f"🗑️ Centre deleted: {centre_id}")
        return {"message": "Centre deleted"}

    def set_centre_services(self, centre_id: str, service_ids: list[str]) -> Centre:
        centre = self.get_centre(centre_id)
        known = {s.id for s in self.repo.list_services(self.db)}
        missing = [s for s in service_ids if s not in known]
        if missing:
            raise HTTPException(status_code=400, detail=f"Unknown service ids: {', '.join(missing)}")
        try:
            return self.repo.set_centre_services(self.db, centre, service_ids)
        except SQLAlchemyError:
            raise HTTPException(status_code=500, detail="Failed to update centre services")

    def list_centre_services(self, centre_id: str) -> list[Service]:
        self.get_centre(centre_id)
        return self.repo.list_services_for_centre(self.db, centre_id)
