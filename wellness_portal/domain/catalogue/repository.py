"""Catalogue repository - Database operations for services and centres"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import Centre, Service

logger = logging.getLogger(__name__)


def _dedupe(ids: list[str]) -> list[str]:
    return list(dict.fromkeys(ids))


class CatalogueRepository:
    """
    Repository for services and centres.

    Service.available_at_centres and Centre.services describe the same
    membership from both sides. Nothing outside this class writes either list,
    and every membership change commits both sides together.
    """

    @staticmethod
    def get_service(db: Session, service_id: str) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def list_services(db: Session, active_only: bool = False) -> list[Service]:
        query = db.query(Service)
        if active_only:
            query = query.filter(Service.is_active.is_(True))
        return query.order_by(Service.name.asc()).all()

    @staticmethod
    def list_services_for_centre(db: Session, centre_id: str) -> list[Service]:
        """Active services offered at a centre"""
        services = CatalogueRepository.list_services(db, active_only=True)
        return [s for s in services if centre_id in (s.available_at_centres or [])]

    @staticmethod
    def get_centre(db: Session, centre_id: str) -> Optional[Centre]:
        return db.query(Centre).filter(Centre.id == centre_id).first()

    @staticmethod
    def get_centres(db: Session, centre_ids: list[str]) -> list[Centre]:
        if not centre_ids:
            return []
        return db.query(Centre).filter(Centre.id.in_(centre_ids)).all()

    @staticmethod
    def list_centres(db: Session, active_only: bool = False) -> list[Centre]:
        query = db.query(Centre)
        if active_only:
            query = query.filter(Centre.is_active.is_(True))
        return query.order_by(Centre.name.asc()).all()

    @staticmethod
    def create_service(db: Session, centre_ids: Optional[list[str]] = None, **data) -> Service:
        """Create a service and, when given, its initial centre membership"""
        service = Service(available_at_centres=[], **data)
        db.add(service)
        try:
            db.flush()
            CatalogueRepository._apply_service_centres(db, service, centre_ids or [])
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
        db.refresh(service)
        return service

    @staticmethod
    def create_centre(db: Session, **data) -> Centre:
        centre = Centre(services=[], **data)
        db.add(centre)
        db.commit()
        db.refresh(centre)
        return centre

    @staticmethod
    def update(db: Session, record, **updates):
        """Update a service or centre with provided fields (never membership)"""
        for key, value in updates.items():
            if key in ("available_at_centres", "services"):
                continue
            if value is not None and hasattr(record, key):
                setattr(record, key, value)
        db.commit()
        db.refresh(record)
        return record

    @staticmethod
    def _apply_service_centres(db: Session, service: Service, centre_ids: list[str]) -> None:
        """Stage one service's membership on both sides without committing"""
        new_ids = _dedupe(centre_ids)
        previous = set(service.available_at_centres or [])
        affected = previous.symmetric_difference(new_ids)

        for centre in CatalogueRepository.get_centres(db, list(affected)):
            current = list(centre.services or [])
            if centre.id in new_ids:
                if service.id not in current:
                    current.append(service.id)
            else:
                current = [s for s in current if s != service.id]
            # JSON columns only track reassignment
            centre.services = current

        service.available_at_centres = new_ids

    @staticmethod
    def set_service_centres(db: Session, service: Service, centre_ids: list[str]) -> Service:
        """
        Set the centres offering a service.

        Updates the service and every added or removed centre in one
        transaction; on failure neither side changes.
        """
        try:
            CatalogueRepository._apply_service_centres(db, service, centre_ids)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Membership update failed for service {service.id}: {str(e)}")
            raise
        db.refresh(service)
        return service

    @staticmethod
    def set_centre_services(db: Session, centre: Centre, service_ids: list[str]) -> Centre:
        """Set the services offered at a centre, built on the per-service primitive"""
        wanted = set(service_ids)
        try:
            for service in CatalogueRepository.list_services(db):
                current = list(service.available_at_centres or [])
                offered = centre.id in current
                if service.id in wanted and not offered:
                    CatalogueRepository._apply_service_centres(db, service, current + [centre.id])
                elif service.id not in wanted and offered:
                    remaining = [c for c in current if c != centre.id]
                    CatalogueRepository._apply_service_centres(db, service, remaining)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Membership update failed for centre {centre.id}: {str(e)}")
            raise
        db.refresh(centre)
        return centre

    @staticmethod
    def delete_service(db: Session, service: Service) -> None:
        """Delete a service and drop it from every centre's list"""
        try:
            CatalogueRepository._apply_service_centres(db, service, [])
            db.delete(service)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise

    @staticmethod
    def delete_centre(db: Session, centre: Centre) -> None:
        """Delete a centre and drop it from every service's list"""
        try:
            for service in CatalogueRepository.list_services(db):
                current = list(service.available_at_centres or [])
                if centre.id in current:
                    service.available_at_centres = [c for c in current if c != centre.id]
            db.delete(centre)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise
