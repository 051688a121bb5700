from __future__ import annotations

import csv
import hashlib
import io
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional

from ..common.datetime_utils import parse_iso_datetime, parse_time_or_datetime
from ..common.validators import optional_int, parse_enum
from ..core.enums import PunchPolicy, PunchType, RoundingMode
from ..core.exceptions import DomainError
from .model import ImportMarker, PunchCommand
from .repository import ImportStateRepository
from .service import AttendanceService

logger = logging.getLogger(__name__)

CSV_COLUMNS = (
    "employeeId",
    "type",
    "time",
    "policy",
    "roundMode",
    "intervalMinutes",
    "gracePeriodMinutes",
    "expectedCheckInTime",
    "latenessThresholdMinutes",
    "automaticDeductionMinutes",
    "location",
    "terminalId",
    "deviceId",
)


@dataclass(frozen=True)
class ImportResult:
    imported: int
    skipped: int
    already_imported: bool = False
    errors: list[str] = field(default_factory=list)


def _text(row: dict, key: str) -> Optional[str]:
    value = str(row.get(key) or "").strip()
    return value or None


def command_from_fields(row: dict) -> PunchCommand:
    """Map a CSV row or JSON body onto a punch command; raises DomainError on malformed values."""
    policy = _text(row, "policy")
    round_mode = _text(row, "roundMode")
    timestamp = _text(row, "time")
    expected = _text(row, "expectedCheckInTime")
    return PunchCommand(
        employee_id=int(optional_int(row.get("employeeId"), "employeeId")),
        punch_type=parse_enum(PunchType, row.get("type"), "type"),
        timestamp=parse_iso_datetime(timestamp) if timestamp else None,
        rounding_mode=parse_enum(RoundingMode, round_mode, "roundMode") if round_mode else None,
        interval_minutes=optional_int(row.get("intervalMinutes"), "intervalMinutes"),
        expected_check_in=parse_time_or_datetime(expected) if expected else None,
        grace_period_minutes=optional_int(row.get("gracePeriodMinutes"), "gracePeriodMinutes"),
        lateness_threshold_minutes=optional_int(row.get("latenessThresholdMinutes"), "latenessThresholdMinutes"),
        automatic_deduction_minutes=optional_int(row.get("automaticDeductionMinutes"), "automaticDeductionMinutes"),
        policy=parse_enum(PunchPolicy, policy, "policy") if policy else None,
        location=_text(row, "location"),
        terminal_id=_text(row, "terminalId"),
        device_id=_text(row, "deviceId"),
    )


class CsvPunchImporter:
    """Bulk historical punch load.

    Each data row becomes one punch recording. Rows that are incomplete,
    malformed or rejected are skipped and counted. A file whose content was
    already imported is not applied again; an interrupted import resumes
    after the last handled row.
    """

    def __init__(self, attendance: AttendanceService, import_state: ImportStateRepository):
        self._attendance = attendance
        self._state = import_state

    def import_file(self, path: str | Path) -> ImportResult:
        path = Path(path)
        return self.import_text(path.read_text(encoding="utf-8-sig"), source=str(path))

    def import_text(self, text: str, *, source: str = "upload") -> ImportResult:
        content_hash = hashlib.sha256(text.encode("utf-8")).hexdigest()
        marker = self._state.get_marker(content_hash) or ImportMarker(content_hash=content_hash, source=source)
        if marker.completed:
            logger.info("csv import skipped, content already imported source=%s", source)
            return ImportResult(imported=0, skipped=0, already_imported=True)
        if marker.rows_done:
            logger.info("csv import resuming source=%s after %s rows", source, marker.rows_done)

        rows_done = marker.rows_done
        imported = marker.imported
        skipped = marker.skipped
        errors: list[str] = []
        reader = csv.DictReader(io.StringIO(text))
        try:
            for index, row in enumerate(reader):
                if index < marker.rows_done:
                    continue
                line_no = index + 2
                row = {(k or "").strip(): v for k, v in row.items()}
                if not _text(row, "employeeId") or not _text(row, "type"):
                    skipped += 1
                else:
                    try:
                        cmd = command_from_fields(row)
                        # Historical rows are loaded even on days now marked as holidays.
                        self._attendance.record_punch(cmd, check_holidays=False)
                        imported += 1
                    except (DomainError, ValueError) as e:
                        skipped += 1
                        errors.append(f"line {line_no}: {e}")
                        logger.warning("csv import row skipped source=%s line=%s: %s", source, line_no, e)
                rows_done = index + 1
        except Exception:
            # Rows already recorded are not applied again when the same content is re-imported.
            self._state.save_marker(
                replace(marker, source=source, rows_done=rows_done, imported=imported, skipped=skipped)
            )
            logger.error("csv import interrupted source=%s after %s rows", source, rows_done)
            raise

        self._state.save_marker(
            replace(marker, source=source, rows_done=rows_done, imported=imported, skipped=skipped, completed=True)
        )
        logger.info("csv import done source=%s imported=%s skipped=%s", source, imported, skipped)
        return ImportResult(imported=imported, skipped=skipped, errors=errors)
