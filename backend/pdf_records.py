"""Metadata rows for stored report PDFs. Call after a successful upload."""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.orm import Session

from db.models import ReportPdfRecord


def revision_label(report_number: int | None) -> str:
    return f"Report {report_number or 1}"


def record_report_pdf(
    db: Session,
    project_id: str,
    file_path: str,
    file_name: str,
    file_size: int,
    revision: str,
    report_kind: str,
    cost_report_id: str | None = None,
    generated_by: str | None = None,
) -> str:
    entry = ReportPdfRecord(
        id=str(uuid.uuid4()),
        cost_report_id=cost_report_id,
        project_id=project_id,
        file_path=file_path,
        file_name=file_name,
        file_size=file_size,
        revision=revision,
        report_kind=report_kind,
        generated_by=generated_by,
    )
    db.add(entry)
    db.commit()
    return entry.id


def delete_report_pdf(db: Session, record_id: str) -> None:
    entry = db.get(ReportPdfRecord, record_id)
    if entry is not None:
        db.delete(entry)
        db.commit()


@dataclass
class PdfRecord:
    report_id: str | None
    project_id: str
    file_path: str
    file_name: str
    file_size: int
    revision: str
    report_kind: str
    generated_by: str | None


class PdfRecordWriter:
    """Opens its own session per write so it can run in a worker thread."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def write(self, record: PdfRecord) -> str:
        db = self._session_factory()
        try:
            return record_report_pdf(
                db,
                project_id=record.project_id,
                file_path=record.file_path,
                file_name=record.file_name,
                file_size=record.file_size,
                revision=record.revision,
                report_kind=record.report_kind,
                cost_report_id=record.report_id,
                generated_by=record.generated_by,
            )
        finally:
            db.close()

    def delete(self, record_id: str) -> None:
        db = self._session_factory()
        try:
            delete_report_pdf(db, record_id)
        finally:
            db.close()
