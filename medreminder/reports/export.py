"""
Flat tabular export of medication logs
"""
import csv
import io
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from medreminder.models.medication import Medication, MedicationLog
from medreminder.utils.timemath import format_locale_timestamp

REPORT_HEADER = ["Medicine Name", "Description", "Taken At", "On Time", "Notes"]
UNKNOWN_MEDICATION = "Unknown medication"


@dataclass(frozen=True)
class ReportRow:
    medicine_name: str
    description: str
    taken_at: str
    on_time: str
    notes: str

    def as_list(self) -> List[str]:
        return [self.medicine_name, self.description, self.taken_at, self.on_time, self.notes]


def project_rows(pairs: Iterable[Tuple[MedicationLog, Optional[Medication]]]) -> List[ReportRow]:
    rows = []
    for log, medication in pairs:
        rows.append(
            ReportRow(
                medicine_name=medication.name if medication is not None else UNKNOWN_MEDICATION,
                description=(medication.description or "") if medication is not None else "",
                taken_at=format_locale_timestamp(log.taken_at),
                on_time="Yes" if log.was_on_time else "No",
                notes=log.notes or "",
            )
        )
    return rows


def render_csv(rows: Iterable[ReportRow]) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(REPORT_HEADER)
    for row in rows:
        writer.writerow(row.as_list())
    return buffer.getvalue().encode("utf-8")
