"""
Per-request service wiring.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.db.session import get_db
from agenda.services.admission_service import AdmissionController
from agenda.services.capacity_service import CapacityReporter

DBSession = Annotated[AsyncSession, Depends(get_db)]


def get_admission_controller(db: DBSession) -> AdmissionController:
    return AdmissionController(db)


def get_capacity_reporter(db: DBSession) -> CapacityReporter:
    return CapacityReporter(db)


AdmissionDep = Annotated[AdmissionController, Depends(get_admission_controller)]
ReporterDep = Annotated[CapacityReporter, Depends(get_capacity_reporter)]
