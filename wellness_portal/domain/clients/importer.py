"""
Client record import from spreadsheets and JSON.

Spreadsheets in the wild use several spellings for the same column, so every
accepted header is listed explicitly against the Client field it fills.
Rows are validated independently; errors use spreadsheet row numbers (the
header is row 1).
"""

import csv
import logging
from dataclasses import dataclass, field
from datetime import date
from io import StringIO
from typing import Any, Iterable, Optional

from ...config import DEFAULT_COUNTRY
from ...models import CLIENT_STATUSES
from ...shared.validators import validate_email, validate_phone
from ...utils.sanitization import sanitize_text

logger = logging.getLogger(__name__)

HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "first_name": ("First Name", "firstName", "first_name"),
    "last_name": ("Last Name", "lastName", "last_name"),
    "email": ("Email", "email", "Email Address"),
    "mobile": ("Mobile", "mobile", "Phone", "phone", "phoneNumber", "Phone Number"),
    "gender": ("Gender", "gender"),
    "date_of_birth": ("Date of Birth", "dateOfBirth", "date_of_birth"),
    "id_number": ("ID Number", "idNumber", "id_number"),
    "passport": ("Passport", "passport"),
    "country": ("Country", "country"),
    "address1": ("Address", "address1", "Address 1", "address"),
    "address2": ("Address 2", "address2"),
    "suburb": ("Suburb", "suburb"),
    "city_town": ("City", "cityTown", "City/Town", "city"),
    "province": ("Province", "province"),
    "postal_code": ("Postal Code", "postalCode", "postal_code"),
    "preferred_method_of_contact": ("Preferred Contact", "preferredMethodOfContact"),
    "marital_status": ("Marital Status", "maritalStatus"),
    "employment_status": ("Employment Status", "employmentStatus"),
    "current_medication": ("Current Medication", "currentMedication"),
    "chronic_conditions": ("Chronic Conditions", "chronicConditions"),
    "current_treatments": ("Current Treatments", "currentTreatments"),
    "allergies": ("Allergies", "allergies"),
    "reason_for_transformation": ("Transformation Goal", "reasonForTransformation"),
    "how_did_you_hear": ("How Heard About Us", "whereDidYouHearAboutLifeArrow", "howDidYouHear"),
    "my_nearest_treatment_centre": ("Treatment Centre", "myNearestTreatmentCentre"),
    "referrer_name": ("Referrer", "referrerName"),
    "notes": ("Notes", "notes"),
    "status": ("Status", "status"),
}

# Header spelling (case and surrounding space ignored) -> Client field
_HEADER_LOOKUP = {
    alias.strip().lower(): field_name
    for field_name, aliases in HEADER_ALIASES.items()
    for alias in aliases
}

REQUIRED_FIELDS = {
    "first_name": "First Name",
    "last_name": "Last Name",
    "email": "Email",
    "mobile": "Mobile",
}

FIELD_DEFAULTS = {
    "country": DEFAULT_COUNTRY,
    "preferred_method_of_contact": "Email",
    "how_did_you_hear": "Other",
    "status": "active",
}

TEMPLATE_HEADERS = [
    "First Name", "Last Name", "Email", "Mobile", "Gender", "ID Number",
    "Country", "Address", "Address 2", "Suburb", "City", "Province", "Postal Code",
    "Preferred Contact", "Marital Status", "Employment Status",
    "Current Medication", "Chronic Conditions", "Current Treatments",
    "Transformation Goal", "How Heard About Us", "Treatment Centre", "Referrer", "Status",
]

TEMPLATE_SAMPLE = [
    "John", "Doe", "john.doe@example.com", "+27821234567", "Male", "8001015009088",
    "South Africa", "123 Main Street", "", "Sandton", "Johannesburg", "Gauteng", "2196",
    "Email", "Single", "Employed",
    "", "", "",
    "Weight loss and fitness improvement", "Social Media", "Sandton Centre", "", "active",
]


@dataclass
class ImportResult:
    records: list[dict] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class RowError(ValueError):
    pass


def canonical_field(header: Optional[str]) -> Optional[str]:
    """Client field for a header spelling, or None when the column is not imported"""
    if header is None:
        return None
    return _HEADER_LOOKUP.get(str(header).strip().lower())


def normalize_row(raw: dict[str, Any]) -> dict:
    """
    Map one raw row onto Client fields and validate it.

    The first non-empty value wins when a row carries two spellings of the
    same column. Defaults fill optional fields left blank.

    Raises:
        RowError: with a message listing what is wrong with the row
    """
    record: dict[str, Any] = {}
    for header, value in raw.items():
        name = canonical_field(header)
        if name is None or value is None:
            continue
        text = str(value).strip()
        if text and not record.get(name):
            record[name] = text

    missing = [label for name, label in REQUIRED_FIELDS.items() if not record.get(name)]
    if missing:
        raise RowError(f"Missing required fields: {', '.join(missing)}")

    try:
        record["email"] = validate_email(record["email"])
    except ValueError:
        raise RowError(f"Invalid email address '{record['email']}'")

    try:
        record["mobile"] = validate_phone(record["mobile"])
    except ValueError:
        raise RowError(f"Invalid mobile number '{record['mobile']}'")

    if "date_of_birth" in record:
        try:
            record["date_of_birth"] = date.fromisoformat(record["date_of_birth"])
        except ValueError:
            raise RowError(f"Invalid date of birth '{record['date_of_birth']}' (expected YYYY-MM-DD)")

    status = record.get("status", FIELD_DEFAULTS["status"]).lower()
    if status not in CLIENT_STATUSES:
        raise RowError(f"Invalid status '{status}'. Must be one of: {', '.join(CLIENT_STATUSES)}")
    record["status"] = status

    for name, value in record.items():
        if isinstance(value, str) and name not in ("email", "mobile", "status"):
            try:
                record[name] = sanitize_text(value)
            except ValueError as e:
                raise RowError(f"{REQUIRED_FIELDS.get(name, name)}: {str(e)}")

    for name, default in FIELD_DEFAULTS.items():
        record.setdefault(name, default)

    return record


def parse_rows(rows: Iterable[dict[str, Any]]) -> ImportResult:
    result = ImportResult()
    for index, raw in enumerate(rows):
        row_number = index + 2
        if not isinstance(raw, dict):
            result.errors.append(f"Row {row_number}: Expected an object with client fields")
            continue
        if not any(str(v).strip() for v in raw.values() if v is not None):
            continue  # blank spreadsheet line
        try:
            result.records.append(normalize_row(raw))
        except RowError as e:
            result.errors.append(f"Row {row_number}: {str(e)}")

    logger.info(f"📥 Parsed {len(result.records)} valid rows, {len(result.errors)} rejected")
    return result


def parse_csv(text: str) -> ImportResult:
    """Parse CSV text with a header row into validated Client field dicts"""
    reader = csv.DictReader(StringIO(text.lstrip("\ufeff")))
    if not reader.fieldnames:
        return ImportResult(errors=["The file is empty or has no header row"])

    unknown = [h for h in reader.fieldnames if h and canonical_field(h) is None]
    if unknown:
        logger.info(f"⚠️ Ignoring unrecognised import columns: {', '.join(unknown)}")

    return parse_rows(reader)


def parse_json(payload: Any) -> ImportResult:
    """Parse a JSON array of client objects using the same header spellings"""
    if not isinstance(payload, list):
        return ImportResult(errors=["Expected a JSON array of client records"])
    return parse_rows(payload)


def template_csv() -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(TEMPLATE_HEADERS)
    writer.writerow(TEMPLATE_SAMPLE)
    return output.getvalue()
