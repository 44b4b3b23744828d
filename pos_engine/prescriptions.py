"""Prescription book: validated prescription records feeding the prescription report."""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

import structlog

from .errors import InvalidPrescription, PrescriptionNotFound, errmsg
from .ids import Clock, TimestampIdGenerator, local_time, utc_now
from .models import Prescription, PrescriptionStatus
from .stores import InMemoryStore, MutableStore
from .validation import require_not_blank, require_not_empty

logger = structlog.get_logger(__name__)


def validate_prescription(prescription: Prescription) -> None:
    """Raise InvalidPrescription if required fields or medicine details are missing."""
    require_not_blank(prescription.patient_name, InvalidPrescription(errmsg.PATIENT_DOCTOR_REQUIRED))
    require_not_blank(prescription.doctor_name, InvalidPrescription(errmsg.PATIENT_DOCTOR_REQUIRED))
    require_not_empty(prescription.details, InvalidPrescription(errmsg.DETAILS_REQUIRED))

    for index, detail in enumerate(prescription.details):
        required = (detail.medicine_name, detail.dosage, detail.frequency, detail.duration)
        if not all(value and str(value).strip() for value in required):
            raise InvalidPrescription(f"Medicine detail at index {index} is incomplete", index)
        if detail.quantity <= 0:
            raise InvalidPrescription(f"Invalid quantity for medicine at index {index}", index)


class PrescriptionBook:
    def __init__(
        self,
        store: Optional[MutableStore[Prescription]] = None,
        id_generator: Optional[TimestampIdGenerator] = None,
        clock: Clock = utc_now,
        tz=None,
    ):
        self._store = store if store is not None else InMemoryStore("prescriptions")
        self._ids = id_generator or TimestampIdGenerator("PRES", clock, tz)
        self._clock = clock
        self._tz = tz
        self.log = logger.bind(component="prescriptions")

    def save(self, prescription: Prescription) -> Prescription:
        """Validate and store a new prescription, filling in id and date when missing."""
        try:
            validate_prescription(prescription)
        except InvalidPrescription as e:
            self.log.warning("prescription_rejected", error=e.message, detail_index=e.detail_index)
            raise

        if not prescription.id:
            prescription = replace(prescription, id=self._ids.next_id())
        if prescription.date is None:
            prescription = replace(prescription, date=local_time(self._clock(), self._tz).date())

        self._store.append(prescription)
        self.log.info(
            "prescription_saved",
            prescription_id=prescription.id,
            doctor=prescription.doctor_name,
            medicines=len(prescription.details),
        )
        return prescription

    def edit(self, prescription_id: str, updated: Prescription) -> Prescription:
        if self._store.find(prescription_id) is None:
            raise PrescriptionNotFound(prescription_id)
        validate_prescription(updated)

        record = replace(updated, id=prescription_id)
        self._store.replace(record)
        self.log.info("prescription_updated", prescription_id=prescription_id)
        return record

    def delete(self, prescription_id: str) -> None:
        if self._store.remove(prescription_id) is None:
            raise PrescriptionNotFound(prescription_id)
        self.log.info("prescription_deleted", prescription_id=prescription_id)

    def set_status(self, prescription_id: str, status: PrescriptionStatus) -> Prescription:
        current = self.get(prescription_id)
        record = replace(current, status=PrescriptionStatus(status))
        self._store.replace(record)
        self.log.info("prescription_status_changed", prescription_id=prescription_id, status=record.status.value)
        return record

    def get(self, prescription_id: str) -> Prescription:
        prescription = self._store.find(prescription_id)
        if prescription is None:
            raise PrescriptionNotFound(prescription_id)
        return prescription

    def list(self) -> tuple[Prescription, ...]:
        return self._store.list()

    def search(self, term: str) -> list[Prescription]:
        """Case-insensitive match on patient name, doctor name or id."""
        needle = term.strip().lower()
        if not needle:
            return list(self._store.list())
        return [
            p
            for p in self._store.list()
            if needle in p.patient_name.lower()
            or needle in p.doctor_name.lower()
            or needle in p.id.lower()
        ]
